"""
Error response schemas for OpenAPI documentation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict, Union


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(None, description="Field that caused the error", examples=["body -> email"])
    message: str = Field(..., description="Human-readable error message", examples=["Invalid email format"])
    type: Optional[str] = Field(None, description="Error type identifier", examples=["value_error"])


class ErrorResponse(BaseModel):
    code: str = Field(..., description="Error code identifier", examples=["VALIDATION_ERROR"])
    message: str = Field(..., description="Human-readable error message", examples=["Request validation failed"])
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking", examples=["abc12345"])
    details: Optional[Union[List[ErrorDetail], Dict[str, Any]]] = Field(
        None,
        description="Field errors for validation failures, or extra context"
    )


class APIErrorResponse(BaseModel):
    """Envelope for every error returned by the API."""

    error: ErrorResponse


def _error_example(code: str, message: str) -> Dict[str, Any]:
    return {
        "application/json": {
            "example": {
                "error": {
                    "code": code,
                    "message": message,
                    "timestamp": "2024-01-15T14:30:00.000000Z",
                    "request_id": "abc12345"
                }
            }
        }
    }


COMMON_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {
        "description": "Bad Request - Invalid request or business rule violation",
        "model": APIErrorResponse,
        "content": _error_example("BAD_REQUEST", "Invalid request parameters"),
    },
    401: {
        "description": "Unauthorized - Authentication required",
        "model": APIErrorResponse,
        "content": _error_example("UNAUTHORIZED", "Authentication required"),
    },
    403: {
        "description": "Forbidden - Insufficient permissions",
        "model": APIErrorResponse,
        "content": _error_example("FORBIDDEN", "Insufficient permissions to update this property"),
    },
    404: {
        "description": "Not Found - Resource not found",
        "model": APIErrorResponse,
        "content": _error_example("NOT_FOUND", "Property not found"),
    },
    409: {
        "description": "Conflict - Resource already exists or slot taken",
        "model": APIErrorResponse,
        "content": _error_example("CONFLICT", "Property already in favorites"),
    },
    422: {
        "description": "Unprocessable Entity - Request validation failed",
        "model": APIErrorResponse,
        "content": _error_example("VALIDATION_ERROR", "Request validation failed"),
    },
    429: {
        "description": "Too Many Requests - Rate limit exceeded",
        "model": APIErrorResponse,
        "content": _error_example("RATE_LIMIT_EXCEEDED", "Rate limit exceeded (30 requests per hour)"),
    },
    500: {
        "description": "Internal Server Error",
        "model": APIErrorResponse,
        "content": _error_example("INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."),
    },
    502: {
        "description": "Bad Gateway - External service failed",
        "model": APIErrorResponse,
        "content": _error_example("EXTERNAL_SERVICE_ERROR", "AI service unavailable"),
    },
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response schemas for specific status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Dictionary of error response schemas
    """
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(401, 403)


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    """Error responses shared by most endpoints."""
    return get_error_responses(400, 401, 403, 404, 422, 500)


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(400, 401, 403, 404, 409, 422, 429, 500)
