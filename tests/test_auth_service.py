"""
Tests for the authentication service and settings validation.
"""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from housing.config import Settings
from housing.schemas.auth import SignUpRequest, UserRole
from housing.services.auth import AuthService
from housing.utils.exceptions import BadRequestError, InvalidCredentialsError, ValidationError
from tests.conftest import TEST_PASSWORD, AccountFactory


class TestAuthService:
    """Test sign-in, sign-up and profile lookup."""

    @pytest.mark.asyncio
    async def test_sign_up_stores_profile(self, anonymous_client):
        service = AuthService(anonymous_client)
        data = SignUpRequest(**AccountFactory.create_signup_data(role=UserRole.STUDENT, name="  Bwalya  "))

        session = await service.sign_up(data)
        profile = await service.get_profile(session.user.id)

        assert profile.name == "Bwalya"
        assert profile.role == UserRole.STUDENT
        assert not profile.is_landlord
        assert await service.get_role(session.user.id) == UserRole.STUDENT

    @pytest.mark.asyncio
    async def test_sign_up_duplicate_email(self, anonymous_client, landlord_session):
        data = SignUpRequest(**AccountFactory.create_signup_data(email=landlord_session.user.email))

        with pytest.raises(BadRequestError):
            await AuthService(anonymous_client).sign_up(data)

    @pytest.mark.asyncio
    async def test_sign_in(self, anonymous_client, landlord_session):
        session = await AuthService(anonymous_client).sign_in(f"  {landlord_session.user.email} ", TEST_PASSWORD)

        assert session.user.id == landlord_session.user.id

    @pytest.mark.asyncio
    async def test_sign_in_wrong_password(self, anonymous_client, landlord_session):
        with pytest.raises(InvalidCredentialsError):
            await AuthService(anonymous_client).sign_in(landlord_session.user.email, "nope-nope")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password,message", [
        ("", "secret123", "Email is required"),
        ("a@example.com", "", "Password is required"),
    ])
    async def test_sign_in_requires_fields(self, anonymous_client, email, password, message):
        with pytest.raises(ValidationError) as exc_info:
            await AuthService(anonymous_client).sign_in(email, password)

        assert exc_info.value.detail == message

    @pytest.mark.asyncio
    async def test_current_user(self, landlord_client, landlord_session, anonymous_client):
        assert (await AuthService(landlord_client).current_user()).id == landlord_session.user.id
        assert await AuthService(anonymous_client).current_user() is None

    @pytest.mark.asyncio
    async def test_sign_out_without_session_is_noop(self, anonymous_client):
        await AuthService(anonymous_client).sign_out()

    @pytest.mark.asyncio
    async def test_profile_missing(self, anonymous_client):
        assert await AuthService(anonymous_client).get_profile(uuid.uuid4()) is None


class TestSettings:
    """Test settings validation."""

    def test_sync_database_urls_get_async_drivers(self):
        assert Settings(database_url="sqlite:///./x.db").database_url == "sqlite+aiosqlite:///./x.db"
        assert Settings(database_url="postgresql://u:p@h/db").database_url == "postgresql+asyncpg://u:p@h/db"

    def test_backend_mode_is_checked(self):
        with pytest.raises(PydanticValidationError):
            Settings(backend_mode="cloud")

    def test_short_jwt_secret_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(jwt_secret_key="too-short")

    def test_environment_flags(self):
        settings = Settings(environment="production")

        assert settings.is_production
        assert not settings.is_testing
        assert Settings(testing=True).is_testing

    def test_trailing_slashes_are_stripped(self):
        settings = Settings(backend_url="https://backend.example.com/", storage_public_path="/files/")

        assert settings.backend_url == "https://backend.example.com"
        assert settings.storage_public_path == "/files"
