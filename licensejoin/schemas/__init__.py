"""
Schema exports.
"""

from licensejoin.schemas.output_row import LICENSE_ROW_FIELDS, LicenseRow

__all__ = ["LICENSE_ROW_FIELDS", "LicenseRow"]
