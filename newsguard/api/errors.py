"""
NewsGuard - API Error System
============================

Error codes and the JSON error envelope.

Moderation itself never produces an API error: outages and timeouts
come back as verdicts. These codes cover malformed requests and a
missing service.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode(str, Enum):
    """Machine-readable error identifiers, each with a status and message."""

    SERVICE_NOT_INITIALIZED = "SERVICE_NOT_INITIALIZED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    SERVER_ERROR = "SERVER_ERROR"

    @property
    def status_code(self) -> int:
        return _ERRORS[self][0]

    @property
    def message(self) -> str:
        return _ERRORS[self][1]


_ERRORS = {
    ErrorCode.SERVICE_NOT_INITIALIZED: (503, "Moderation service is not initialized"),
    ErrorCode.VALIDATION_FAILED: (422, "Request body failed validation"),
    ErrorCode.BATCH_TOO_LARGE: (413, "Batch exceeds the maximum number of items"),
    ErrorCode.SERVER_ERROR: (500, "Unexpected server error"),
}


def _envelope(code: ErrorCode, message: Optional[str], details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "success": False,
        "error_code": code.value,
        "message": message or code.message,
        "details": details,
    }


# =============================================================================
# Raising & Returning
# =============================================================================

class APIError(HTTPException):
    """
    HTTPException whose detail is the standard error envelope.

    Usage:
        raise APIError(ErrorCode.BATCH_TOO_LARGE, details={"max_items": 100})
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.error_code = code
        super().__init__(status_code=code.status_code, detail=_envelope(code, message, details))


def error_response(
    code: ErrorCode,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Error envelope as a response, for exception handlers."""
    return JSONResponse(status_code=code.status_code, content=_envelope(code, message, details))


__all__ = ["ErrorCode", "APIError", "error_response"]
