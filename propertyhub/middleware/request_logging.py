"""
Request logging middleware: request ids, body size limits and timing.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from propertyhub.services.error_handler import ErrorHandlerService
from propertyhub.utils.exceptions import BadRequestError
from propertyhub.utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id, rejects oversized bodies and logs one line
    per response.

    An incoming ``X-Request-ID`` header is reused so ids can be traced across
    services; otherwise a short random id is generated.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 10 * 1024 * 1024,  # 10MB
        slow_request_threshold: float = 1.0  # seconds
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.perf_counter()

        try:
            self._validate_request_size(request)
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        response = await call_next(request)

        processing_time = time.perf_counter() - start_time
        self._log_response(request, response, request_id, processing_time)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{processing_time:.3f}"
        return response

    def _validate_request_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If the declared body size exceeds the limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return

        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")

        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )

    def _log_response(
        self,
        request: Request,
        response: Response,
        request_id: str,
        processing_time: float
    ) -> None:
        message = (
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} ({processing_time:.3f}s)"
        )
        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "processing_time": processing_time,
            "client_ip": get_client_ip(request),
        }

        if processing_time > self.slow_request_threshold:
            logger.warning(f"Slow request {message}", extra=extra)
        else:
            logger.info(message, extra=extra)
