"""
Service layer for business logic implementation.
Contains services for authentication, listing creation, listing browsing and error handling.
"""

from .auth import AuthService
from .listing_browser import ListingBrowserService
from .listing_creation import ListingCreationService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ListingBrowserService",
    "ListingCreationService",
    "ErrorHandlerService"
]
