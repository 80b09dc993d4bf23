"""
FastAPI dependency injection utilities for backend clients, services and authentication.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from housing.backend import BackendClient, BackendFactory
from housing.config import Settings
from housing.schemas.auth import AuthUser, Profile
from housing.services.auth import AuthService
from housing.services.listing_browser import ListingBrowserService
from housing.services.listing_creation import ListingCreationService
from housing.utils.exceptions import (
    ForbiddenError,
    LandlordRequiredError,
    UnauthorizedError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_backend_factory(request: Request) -> BackendFactory:
    """Backend factory owned by the application lifespan."""
    return request.app.state.backend


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """
    Access token of the caller.

    A Bearer header wins over the session cookie resolved by the session guard.
    """
    if credentials:
        return credentials.credentials
    return getattr(request.state, "access_token", None)


def get_backend(
    factory: BackendFactory = Depends(get_backend_factory),
    access_token: Optional[str] = Depends(get_access_token)
) -> BackendClient:
    """Request-scoped backend client bound to the caller's token."""
    return factory.for_token(access_token)


def get_auth_service(backend: BackendClient = Depends(get_backend)) -> AuthService:
    return AuthService(backend)


def get_listing_browser(
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings)
) -> ListingBrowserService:
    return ListingBrowserService(backend, settings)


def get_listing_creation(
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings)
) -> ListingCreationService:
    return ListingCreationService(backend, settings)


async def get_optional_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[AuthUser]:
    """
    Get current user if a valid token was sent, otherwise return None.
    """
    if not credentials:
        user = getattr(request.state, "user", None)
        if user is not None:
            return user
    return await auth_service.current_user()


async def get_current_user(
    user: Optional[AuthUser] = Depends(get_optional_current_user)
) -> AuthUser:
    """
    Get current authenticated user.

    Raises:
        UnauthorizedError: If no token was sent or the token is invalid
    """
    if user is None:
        raise UnauthorizedError("Authentication token required")
    return user


async def get_current_profile(
    user: AuthUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> Profile:
    """
    Get the profile row of the current user.

    Raises:
        ForbiddenError: If the account has no profile
    """
    profile = await auth_service.get_profile(user.id)
    if profile is None:
        raise ForbiddenError("No profile found for this account")
    return profile


async def get_current_landlord(
    profile: Profile = Depends(get_current_profile)
) -> Profile:
    """
    Get the current user's profile, requiring the landlord role.

    Raises:
        LandlordRequiredError: If the user is not a landlord
    """
    if not profile.is_landlord:
        raise LandlordRequiredError()
    return profile
