"""
HTML parsing exports.
"""

from licensejoin.parsing.html_parsers import LicensePageParser, normalize_license_number

__all__ = ["LicensePageParser", "normalize_license_number"]
