"""
Authentication service for sign-in, sign-up, sign-out and profile lookup.
Delegates credentials and sessions to the backend auth provider.
"""

from typing import Optional
import logging
import uuid

from housing.backend import AuthError, BackendClient, BackendError
from housing.schemas.auth import AuthSession, AuthUser, Profile, SignUpRequest, UserRole
from housing.utils.exceptions import (
    BadRequestError,
    InvalidCredentialsError,
    RemoteReadError,
    RemoteWriteError,
    ValidationError
)

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service bound to a request-scoped backend client.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Authenticate with email and password.

        Raises:
            ValidationError: If email or password is missing
            InvalidCredentialsError: If the backend rejects the credentials
        """
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")
        if not password:
            raise ValidationError("Password is required", field="password")

        try:
            session = await self.backend.auth.sign_in_with_password(email.strip().lower(), password)
        except AuthError as e:
            logger.warning(f"Failed sign-in for {email}: {e}")
            raise InvalidCredentialsError()

        logger.info(f"User signed in: {session.user.email}")
        return session

    async def sign_up(self, data: SignUpRequest) -> AuthSession:
        """
        Register an account and create its profile row.

        Raises:
            BadRequestError: If the backend refuses the registration
            RemoteWriteError: If the profile row cannot be written
        """
        try:
            session = await self.backend.auth.sign_up(
                data.email,
                data.password,
                metadata={"name": data.name, "role": data.role.value}
            )
        except AuthError as e:
            logger.warning(f"Sign-up refused for {data.email}: {e}")
            raise BadRequestError(str(e))

        # The profile insert must run as the new user for row-level policies
        client = self.backend.with_token(session.access_token)

        try:
            await client.table("profiles").insert({
                "id": str(session.user.id),
                "name": data.name,
                "email": data.email,
                "phone": data.phone,
                "role": data.role.value,
            })
        except BackendError as e:
            logger.error(f"Failed to create profile for {data.email}: {e}")
            raise RemoteWriteError("creating profile", e)

        logger.info(f"Registered {data.role.value} account: {data.email}")
        return session

    async def sign_out(self) -> None:
        """End the bound session. Failures are logged, the caller clears cookies regardless."""
        if not self.backend.access_token:
            return
        try:
            await self.backend.auth.sign_out(self.backend.access_token)
        except BackendError as e:
            logger.warning(f"Sign-out call failed: {e}")

    async def current_user(self) -> Optional[AuthUser]:
        return await self.backend.current_user()

    async def get_profile(self, user_id: uuid.UUID) -> Optional[Profile]:
        """
        Get the profile row of a user.

        Raises:
            RemoteReadError: If the backend query fails
        """
        try:
            row = await self.backend.table("profiles").select("*").eq("id", str(user_id)).first()
        except BackendError as e:
            logger.error(f"Failed to load profile {user_id}: {e}")
            raise RemoteReadError("loading profile", e)
        return Profile.model_validate(row) if row else None

    async def get_role(self, user_id: uuid.UUID) -> Optional[UserRole]:
        profile = await self.get_profile(user_id)
        return profile.role if profile else None
