"""
Standard API response models and helpers for consistent response formatting.

The admin dashboard and order form read these envelopes:
- Success: { "success": true, "message"?: "...", <payload keys> }
- Error: { "success": false, "message": "...", "error": { "code", "message", "details" } }
"""
import re
from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error detail structure."""
    code: str = Field(..., description="Error code (e.g., 'not_found', 'already_paid')")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = Field(False, description="Always false for errors")
    message: str = Field(..., description="Same as error.message, kept for the dashboard")
    error: ErrorDetail = Field(..., description="Error details")


def success_response(message: str | None = None, **payload: Any) -> dict[str, Any]:
    """
    Create a standardized success response.

    Returns:
        dict: { "success": true, "message": <message>, **payload }
    """
    response: dict[str, Any] = {"success": True}
    if message:
        response["message"] = message
    response.update(payload)
    return response


def error_response(code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "error": {"code": code, "message": message, "details": details},
    }


def error_code_for(exc: Exception) -> str:
    """AlreadyPaidError → 'already_paid'."""
    name = exc.__class__.__name__
    if name.endswith("Error"):
        name = name[: -len("Error")]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
