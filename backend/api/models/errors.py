"""
Error body returned for domain errors that escape a route.

Credential failures are not errors at this level: they come back as
AuthResult with HTTP 200.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from shared.exceptions import GarageError


class ErrorResponse(BaseModel):
    """JSON body for an unhandled GarageError."""

    error: str = Field(..., description="Exception class name")
    detail: Optional[str] = None
    code: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, exc: GarageError) -> "ErrorResponse":
        return cls(
            error=exc.__class__.__name__,
            detail=exc.message,
            code=exc.code,
            details=exc.details,
        )
