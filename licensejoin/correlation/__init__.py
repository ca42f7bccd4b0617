"""
Correlation engine and completion monitor exports.
"""

from licensejoin.correlation.engine import CorrelationEngine
from licensejoin.correlation.monitor import CompletionMonitor

__all__ = ["CompletionMonitor", "CorrelationEngine"]
