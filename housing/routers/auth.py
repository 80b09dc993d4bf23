"""
Authentication API endpoints for sign-in, sign-up, sign-out and user information.
Sessions are issued by the backend auth provider and returned as bearer tokens.
"""

from fastapi import APIRouter, Depends, status

from housing.schemas.auth import (
    AuthUser,
    CurrentUserResponse,
    LoginRequest,
    SignUpRequest,
    TokenResponse
)
from housing.services.auth import AuthService
from housing.utils.dependencies import get_auth_service, get_current_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email and password, returns access and refresh tokens"
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """
    Authenticate user and return session tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
    """
    session = await auth_service.sign_in(login_data.email, login_data.password)
    return TokenResponse.from_session(session)


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an account",
    description="Create an account and its profile with the chosen role"
)
async def signup(
    signup_data: SignUpRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """
    Register a landlord or student account.

    Raises:
        BadRequestError: If the backend refuses the registration
        RemoteWriteError: If the profile cannot be created
    """
    session = await auth_service.sign_up(signup_data)
    return TokenResponse.from_session(session)


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="User logout",
    description="End the current session"
)
async def logout(
    current_user: AuthUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    await auth_service.sign_out()
    return {"message": "Successfully logged out"}


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Get the authenticated user and their profile"
)
async def get_current_user_info(
    current_user: AuthUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUserResponse:
    profile = await auth_service.get_profile(current_user.id)
    return CurrentUserResponse(user=current_user, profile=profile)
