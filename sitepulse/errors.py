"""
Domain exceptions raised by the aggregation core
"""

from typing import Optional


class SitePulseError(Exception):
    """Base class for all errors raised by sitepulse"""


class ValidationError(SitePulseError, ValueError):
    """Input rejected before any mutation took place"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
