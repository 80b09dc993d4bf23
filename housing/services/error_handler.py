"""
JSON error bodies for the API.

Every error leaves the API as
{"error": {"code", "message", "timestamp", "request_id", "details"?}}.
Pages render their own HTML errors and only fall back to these for
failures outside a page handler.
"""

from typing import Dict, Any, Optional, List, Tuple, Union
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from housing.backend import AuthError, BackendError
from housing.utils.exceptions import APIException, ValidationError
import logging
import uuid

logger = logging.getLogger(__name__)

# Backend failures that escape a service: (status, code, message) sent to the client
BACKEND_AUTH_FAILURE = (401, "UNAUTHORIZED", "Authentication required")
BACKEND_DENIED = (403, "FORBIDDEN", "The backend refused this operation")
BACKEND_UNAVAILABLE = (503, "BACKEND_UNAVAILABLE", "The listing service is unavailable right now")
BACKEND_FAILURE = (502, "BACKEND_ERROR", "Backend request failed")

# Postgres "insufficient privilege", returned when a row policy rejects a write
ROW_POLICY_VIOLATION = "42501"


class ErrorHandlerService:
    """Formats exceptions into JSON error responses and logs them."""

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the error envelope.

        Args:
            error_code: Stable code such as NOT_FOUND
            message: Human-readable message
            details: Per-field details, omitted when empty
            request_id: Request identifier for tracking

        Returns:
            Error response dictionary
        """
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"error": error}

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Respond to one of the application's own exceptions."""
        details = exception.field_errors if isinstance(exception, ValidationError) else None
        return ErrorHandlerService._respond(
            request,
            exception.status_code,
            exception.error_code or "API_ERROR",
            exception.detail,
            details=details,
            headers=exception.headers,
        )

    @staticmethod
    def handle_validation_error(
        exception: Union[RequestValidationError, PydanticValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Respond to request parsing errors with one detail per field."""
        details = [
            {
                "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exception.errors()
        ]
        return ErrorHandlerService._respond(
            request, 422, "VALIDATION_ERROR", "Request validation failed", details=details
        )

    @staticmethod
    def handle_backend_error(
        exception: BackendError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Respond to a backend failure that escaped the service layer.

        The backend's own message is logged but never sent to the client.
        """
        status_code, error_code, message = ErrorHandlerService.classify_backend_error(exception)
        logger.error(
            f"Backend failure [{ErrorHandlerService.get_request_id(request)}]: "
            f"{exception.code or exception.status_code} - {exception.message}"
        )
        return ErrorHandlerService._respond(request, status_code, error_code, message, log=False)

    @staticmethod
    def classify_backend_error(exception: BackendError) -> Tuple[int, str, str]:
        if isinstance(exception, AuthError):
            return BACKEND_AUTH_FAILURE
        if exception.code == ROW_POLICY_VIOLATION or exception.status_code == 403:
            return BACKEND_DENIED
        if exception.status_code == 503:
            return BACKEND_UNAVAILABLE
        return BACKEND_FAILURE

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Respond to framework HTTP errors such as unknown routes."""
        return ErrorHandlerService._respond(
            request,
            exception.status_code,
            f"HTTP_{exception.status_code}",
            str(exception.detail),
            headers=getattr(exception, "headers", None),
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        request_id = ErrorHandlerService.get_request_id(request)
        logger.error(
            f"Unexpected error [{request_id}] on {ErrorHandlerService._path(request)}: "
            f"{type(exception).__name__} - {exception}",
            exc_info=exception
        )
        return ErrorHandlerService._respond(
            request,
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            log=False,
        )

    @staticmethod
    def get_request_id(request: Optional[Request] = None) -> str:
        """Request ID assigned by the request middleware, or a fresh one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _respond(
        request: Optional[Request],
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
        log: bool = True
    ) -> JSONResponse:
        request_id = ErrorHandlerService.get_request_id(request)
        if log:
            logger.warning(
                f"{error_code} [{request_id}] on {ErrorHandlerService._path(request)}: {message}"
            )
        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(
                error_code, message, details=details, request_id=request_id
            ),
            headers=headers,
        )

    @staticmethod
    def _path(request: Optional[Request]) -> str:
        return request.url.path if request is not None else "-"
