"""
Dispatch scheduler exports.
"""

from licensejoin.scheduling.dispatch import (
    DispatchScheduler,
    ImmediateScheduler,
    RateLimitedScheduler,
    create_scheduler,
)

__all__ = [
    "DispatchScheduler",
    "ImmediateScheduler",
    "RateLimitedScheduler",
    "create_scheduler",
]
