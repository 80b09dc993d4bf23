"""
Request context middleware.

Tags each request with an ID echoed in the X-Request-ID header, enforces body
size limits before anything reads the body and logs requests when enabled.
Multipart requests (listing submissions with images) get a larger limit than
plain form and JSON bodies.
"""

from typing import Callable, Optional, Tuple
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from housing.services.error_handler import ErrorHandlerService
from housing.utils.exceptions import APIException, BadRequestError, RequestTooLargeError

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Args:
        app: Wrapped application
        max_request_size: Limit for non-multipart bodies, in bytes
        max_upload_size: Limit for multipart bodies, in bytes
        enable_request_logging: Log each request and its response time
        quiet_prefixes: Paths never logged (static assets, stored images)
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 1024 * 1024,
        max_upload_size: int = 50 * 1024 * 1024,
        enable_request_logging: bool = False,
        quiet_prefixes: Tuple[str, ...] = ("/static",)
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.max_upload_size = max_upload_size
        self.enable_request_logging = enable_request_logging
        self.quiet_prefixes = quiet_prefixes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            self._check_body_size(request)
            response = await call_next(request)
        except APIException as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
        except Exception as exc:
            response = ErrorHandlerService.handle_unexpected_error(exc, request)

        if self.enable_request_logging and not request.url.path.startswith(self.quiet_prefixes):
            elapsed = time.perf_counter() - started
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} -> "
                f"{response.status_code} in {elapsed:.3f}s ({self._client_ip(request)})"
            )

        response.headers["X-Request-ID"] = request_id
        return response

    def body_limit(self, request: Request) -> int:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            return self.max_upload_size
        return self.max_request_size

    def _check_body_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If Content-Length is not a number
            RequestTooLargeError: If the declared body is over the limit
        """
        size = self._declared_size(request)
        if size is None:
            return
        limit = self.body_limit(request)
        if size > limit:
            raise RequestTooLargeError(size, limit)

    @staticmethod
    def _declared_size(request: Request) -> Optional[int]:
        content_length = request.headers.get("content-length")
        if not content_length:
            return None
        try:
            return int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"
