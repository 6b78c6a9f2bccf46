"""Validation error exception.

ONLY descriptor validation - exception raised when a mutation descriptor or
its payload is malformed, before any transport call is made.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Any, Dict, List, Optional

from .....core.exceptions.base import StreamdashError


class ValidationError(StreamdashError):
    """Malformed mutation descriptor or payload."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None
    ):
        self.field = field
        self.errors = errors or []
        super().__init__(
            message,
            error_code="INVALID_MUTATION",
            details={"field": field, "errors": self.errors},
        )

    @classmethod
    def missing_field(cls, field: str) -> "ValidationError":
        """Create error for a missing required payload field."""
        return cls(f"Missing required payload field: {field}", field=field)

    @classmethod
    def from_pydantic(cls, error: Any) -> "ValidationError":
        """Create error from a pydantic ValidationError."""
        errors = [
            {
                "field": ".".join(str(part) for part in item.get("loc", ())),
                "message": item.get("msg"),
                "type": item.get("type"),
            }
            for item in error.errors()
        ]
        first_field = errors[0]["field"] if errors else None
        return cls(
            f"Invalid mutation payload: {len(errors)} validation error(s)",
            field=first_field,
            errors=errors,
        )
