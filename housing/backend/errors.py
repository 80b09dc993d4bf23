"""
Errors raised by backend clients.
"""

from typing import Optional


class BackendError(Exception):
    """A call to the backend failed."""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def __str__(self) -> str:
        return self.message


class AuthError(BackendError):
    """The backend rejected a token or credentials."""

    def __init__(self, message: str = "Invalid or expired session", status_code: int = 401, code: Optional[str] = None):
        super().__init__(message, status_code=status_code, code=code)
