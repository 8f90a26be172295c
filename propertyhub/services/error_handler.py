"""
Error handling service that renders every failure in the same JSON envelope:
``{"error": {"code", "message", "timestamp", "request_id", "details"}}``.
"""

from typing import Dict, Any, Optional, List, Union
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from propertyhub.utils.exceptions import APIException, ValidationError
import logging
import uuid

logger = logging.getLogger(__name__)

ErrorDetails = Optional[Union[List[Dict[str, Any]], Dict[str, Any]]]

# Driver messages name the table or column; first match wins
_UNIQUE_CONSTRAINTS = (
    ("users.email", "An account with this email already exists"),
    ("uq_favorites_user_property", "Property is already in favorites"),
    ("favorites.user_id", "Property is already in favorites"),
    ("property_images.file_path", "Image file is already registered"),
)


class ErrorHandlerService:
    """Builds error responses and logs them at a level matching their severity."""

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: ErrorDetails = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional field errors or extra context
            request_id: Optional request identifier for tracking

        Returns:
            Formatted error response dictionary
        """
        body: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": ErrorHandlerService._get_current_timestamp(),
        }
        if details:
            body["details"] = details
        if request_id:
            body["request_id"] = request_id
        return {"error": body}

    @staticmethod
    def _respond(
        status_code: int,
        error_code: str,
        message: str,
        request_id: str,
        details: ErrorDetails = None,
        headers: Optional[Dict[str, str]] = None
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(error_code, message, details, request_id),
            headers=headers
        )

    @staticmethod
    def _log_context(request: Optional[Request], request_id: str, **extra) -> Dict[str, Any]:
        return {
            "request_id": request_id,
            "path": request.url.path if request else None,
            **extra,
        }

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Domain errors keep their status, code, details and headers."""
        request_id = ErrorHandlerService._get_request_id(request)

        log = logger.error if exception.status_code >= 500 else logger.warning
        log(
            f"[{request_id}] {exception.error_code}: {exception.detail}",
            extra=ErrorHandlerService._log_context(
                request, request_id,
                error_code=exception.error_code,
                status_code=exception.status_code
            )
        )

        details = exception.details
        if isinstance(exception, ValidationError) and exception.field_errors:
            details = exception.field_errors

        return ErrorHandlerService._respond(
            exception.status_code,
            exception.error_code or "API_ERROR",
            exception.detail,
            request_id,
            details=details,
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: Union[RequestValidationError, PydanticValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle request validation errors with per-field details.

        Each entry is ``{"field": "body -> price", "message", "type"}``.

        Returns:
            422 JSON response listing every invalid field
        """
        request_id = ErrorHandlerService._get_request_id(request)

        fields = [
            {
                "field": " -> ".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exception.errors()
        ]

        logger.warning(
            f"[{request_id}] invalid request: {', '.join(item['field'] for item in fields)}",
            extra=ErrorHandlerService._log_context(request, request_id)
        )

        return ErrorHandlerService._respond(
            422, "VALIDATION_ERROR", "Request validation failed", request_id, details=fields
        )

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Integrity violations become 409, other database failures 500."""
        request_id = ErrorHandlerService._get_request_id(request)

        if isinstance(exception, IntegrityError):
            status_code, error_code = 409, "INTEGRITY_ERROR"
            message = ErrorHandlerService._describe_integrity_error(exception)
        else:
            status_code, error_code = 500, "DATABASE_ERROR"
            message = "Database operation failed"

        logger.error(
            f"[{request_id}] {error_code}: {exception}",
            extra=ErrorHandlerService._log_context(request, request_id, error_code=error_code),
            exc_info=status_code >= 500
        )

        return ErrorHandlerService._respond(status_code, error_code, message, request_id)

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        request_id = ErrorHandlerService._get_request_id(request)

        logger.warning(
            f"[{request_id}] HTTP {exception.status_code}: {exception.detail}",
            extra=ErrorHandlerService._log_context(request, request_id, status_code=exception.status_code)
        )

        return ErrorHandlerService._respond(
            exception.status_code,
            f"HTTP_{exception.status_code}",
            str(exception.detail),
            request_id,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Log the full traceback and return a generic 500 without internals."""
        request_id = ErrorHandlerService._get_request_id(request)

        logger.error(
            f"[{request_id}] unhandled {type(exception).__name__}: {exception}",
            extra=ErrorHandlerService._log_context(
                request, request_id, exception_type=type(exception).__name__
            ),
            exc_info=exception
        )

        return ErrorHandlerService._respond(
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            request_id
        )

    @staticmethod
    def _get_request_id(request: Optional[Request]) -> str:
        """Reuse the id assigned by the request middleware, or make a new one."""
        request_id = getattr(request.state, "request_id", None) if request is not None else None
        return request_id or str(uuid.uuid4())[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")

    @staticmethod
    def _describe_integrity_error(exception: IntegrityError) -> str:
        """User-facing description of a constraint violation. Never echoes values."""
        driver_message = str(exception.orig).lower()

        if "unique" in driver_message or "duplicate key" in driver_message:
            for marker, description in _UNIQUE_CONSTRAINTS:
                if marker in driver_message:
                    return description
            return "A record with these values already exists"
        if "foreign key" in driver_message:
            return "Referenced user or property does not exist"
        if "not null" in driver_message:
            return "Required field cannot be empty"
        return "Data integrity constraint violation"
