"""
Utility modules for the Student Housing application.
"""

from .auth import (
    create_access_token,
    create_refresh_token,
    verify_token,
    hash_password,
    verify_password,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    BadRequestError,
    InvalidCredentialsError,
    LandlordRequiredError,
    PropertyNotFoundError,
    ImageRejectedError,
    UnsupportedFileTypeError,
    FileSizeExceededError,
    RequestTooLargeError,
    RemoteCallError,
    RemoteReadError,
    RemoteWriteError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "hash_password",
    "verify_password",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "BadRequestError",
    "InvalidCredentialsError",
    "LandlordRequiredError",
    "PropertyNotFoundError",
    "ImageRejectedError",
    "UnsupportedFileTypeError",
    "FileSizeExceededError",
    "RequestTooLargeError",
    "RemoteCallError",
    "RemoteReadError",
    "RemoteWriteError",
]
