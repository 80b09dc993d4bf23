"""
Middleware package for the Student Housing application.
Provides request tracking and the session guard.
"""

from .request_context import RequestContextMiddleware
from .session_guard import SessionGuardMiddleware

__all__ = [
    "RequestContextMiddleware",
    "SessionGuardMiddleware"
]
