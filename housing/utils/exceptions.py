"""
Exceptions surfaced to users of the listing pages and API.

Every failure falls in one of three groups: the caller is not signed in or
not allowed, the submitted data is invalid, or a call to the backend failed.
Each group maps to an HTTP status and an error code used in JSON bodies.
"""

from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base class; carries a stable error code next to the HTTP status."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return self.detail


# Caller identity
class UnauthorizedError(APIException):
    """No valid session."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class InvalidCredentialsError(UnauthorizedError):

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class ForbiddenError(APIException):
    """Signed in, but the account may not do this."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class LandlordRequiredError(ForbiddenError):

    def __init__(self):
        super().__init__("Only landlords can create listings.")


# Submitted data
class ValidationError(APIException):
    """
    A form or request value failed a local check.

    Args:
        detail: Message shown to the user
        field: Form field the message belongs to, if any
        field_errors: Per-field messages returned as error details
    """

    def __init__(
        self,
        detail: str,
        field: Optional[str] = None,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field = field
        self.field_errors = field_errors or []
        if field and not self.field_errors:
            self.field_errors = [{"field": field, "message": detail}]


class BadRequestError(APIException):

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST"
        )


class ImageRejectedError(BadRequestError):
    """An uploaded file cannot be stored as a listing image."""

    def __init__(self, detail: str, filename: Optional[str] = None):
        super().__init__(detail)
        self.filename = filename


class UnsupportedFileTypeError(ImageRejectedError):

    def __init__(self, content_type: Optional[str] = None, filename: Optional[str] = None):
        super().__init__("Only image files are allowed.", filename)
        self.content_type = content_type


class FileSizeExceededError(ImageRejectedError):

    def __init__(self, size: int, max_size: int, filename: Optional[str] = None):
        super().__init__(f"Image size must be less than {max_size / (1024 * 1024):g}MB.", filename)
        self.size = size
        self.max_size = max_size


class RequestTooLargeError(APIException):
    """Request body over the configured limit; raised before the body is read."""

    def __init__(self, size: int, max_size: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body of {size} bytes exceeds the {max_size} byte limit",
            error_code="PAYLOAD_TOO_LARGE"
        )


class NotFoundError(APIException):

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class PropertyNotFoundError(NotFoundError):

    def __init__(self, property_id: str):
        super().__init__("Property", property_id)


# Backend calls
class RemoteCallError(APIException):
    """
    A backend call made on the user's behalf failed.

    The message reads "Error <operation>: <cause>", e.g.
    "Error adding property: duplicate key".
    """

    error_code_name = "REMOTE_CALL_FAILED"

    def __init__(self, operation: str, cause: Any):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error {operation}: {cause}",
            error_code=self.error_code_name
        )
        self.operation = operation
        self.cause = cause


class RemoteWriteError(RemoteCallError):
    """A row insert or blob upload failed."""

    error_code_name = "REMOTE_WRITE_FAILED"


class RemoteReadError(RemoteCallError):
    error_code_name = "REMOTE_READ_FAILED"
