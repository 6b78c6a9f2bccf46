"""Base exceptions for streamdash.

This module defines the base exception hierarchy for the streamdash package.
All exceptions inherit from StreamdashError and carry an error code and
structured details for logging and for the views that surface them.
"""

from typing import Any, Dict, Optional


class StreamdashError(Exception):
    """Base exception for all streamdash errors.

    All exceptions in the streamdash package inherit from this base class
    and include structured error information for better debugging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def create_error_response(exception: StreamdashError) -> Dict[str, Any]:
    """Create standardized error payload from exception.

    Args:
        exception: The streamdash exception

    Returns:
        Error payload dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
        }
    }
