"""
Test configuration and fixtures for the student housing application.
Provides a local backend on a temporary database, account and listing factories,
and common test utilities.
"""

import io
import uuid
from typing import AsyncGenerator, List, Optional, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage

from housing.backend import BackendClient
from housing.backend.local import LocalBackendFactory
from housing.config import Settings
from housing.main import create_app
from housing.schemas.auth import AuthSession, SignUpRequest, UserRole
from housing.schemas.image import ImageUpload
from housing.schemas.property import ListingCreateResult, ListingForm
from housing.services.auth import AuthService
from housing.services.listing_creation import ListingCreationService


TEST_PASSWORD = "testpassword123"


def make_image_bytes(fmt: str = "PNG", size: tuple = (8, 8), color: str = "red") -> bytes:
    """Render a small real image."""
    buffer = io.BytesIO()
    PILImage.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(
    filename: str = "photo.png",
    content_type: str = "image/png",
    data: Optional[bytes] = None
) -> ImageUpload:
    return ImageUpload(
        filename=filename,
        content_type=content_type,
        data=make_image_bytes() if data is None else data
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing the local backend at a temporary database and storage root."""
    return Settings(
        environment="testing",
        testing=True,
        backend_mode="local",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'housing_test.db'}",
        storage_dir=str(tmp_path / "storage"),
        jwt_secret_key="test-secret-key-for-local-backend-0123456789",
        session_secret_key="test-session-secret",
    )


@pytest.fixture
async def backend_factory(settings: Settings) -> AsyncGenerator[LocalBackendFactory, None]:
    """Started local backend, disposed after the test."""
    factory = LocalBackendFactory(settings)
    await factory.startup()
    yield factory
    await factory.shutdown()


@pytest.fixture
def anonymous_client(backend_factory: LocalBackendFactory) -> BackendClient:
    return backend_factory.for_token(None)


# Test data factories
class AccountFactory:
    """Factory for creating test accounts with profiles."""

    @staticmethod
    def create_signup_data(
        role: UserRole = UserRole.LANDLORD,
        email: Optional[str] = None,
        name: str = "Test User",
        phone: Optional[str] = "+260970000000"
    ) -> dict:
        return {
            "email": email or f"test{uuid.uuid4().hex[:8]}@example.com",
            "password": TEST_PASSWORD,
            "name": name,
            "phone": phone,
            "role": role.value,
        }

    @staticmethod
    async def create_account(
        factory: LocalBackendFactory,
        role: UserRole = UserRole.LANDLORD,
        email: Optional[str] = None,
        name: str = "Test User"
    ) -> AuthSession:
        data = SignUpRequest(**AccountFactory.create_signup_data(role=role, email=email, name=name))
        return await AuthService(factory.for_token(None)).sign_up(data)


class ListingFactory:
    """Factory for creating test listings through the creation workflow."""

    @staticmethod
    def create_form(
        title: str = "Cosy room near campus",
        price: str = "1500",
        location: str = "Kalulushi",
        property_type: str = "apartment",
        amenity_ids: Sequence[int] = (),
        **overrides
    ) -> ListingForm:
        values = {
            "title": title,
            "description": "Bright room with a desk",
            "price": price,
            "address": "Plot 12, Freedom Avenue",
            "location": location,
            "property_type": property_type,
            "latitude": -12.80532,
            "longitude": 28.24403,
            "amenity_ids": list(amenity_ids),
        }
        values.update(overrides)
        return ListingForm(**values)

    @staticmethod
    async def create_listing(
        client: BackendClient,
        settings: Settings,
        images: Optional[List[ImageUpload]] = None,
        **form_values
    ) -> ListingCreateResult:
        service = ListingCreationService(client, settings)
        return await service.create_listing(
            ListingFactory.create_form(**form_values),
            images if images is not None else [make_upload()]
        )


@pytest.fixture
async def landlord_session(backend_factory: LocalBackendFactory) -> AuthSession:
    return await AccountFactory.create_account(backend_factory, UserRole.LANDLORD, name="Test Landlord")


@pytest.fixture
async def student_session(backend_factory: LocalBackendFactory) -> AuthSession:
    return await AccountFactory.create_account(backend_factory, UserRole.STUDENT, name="Test Student")


@pytest.fixture
def landlord_client(backend_factory: LocalBackendFactory, landlord_session: AuthSession) -> BackendClient:
    return backend_factory.for_token(landlord_session.access_token)


@pytest.fixture
def student_client(backend_factory: LocalBackendFactory, student_session: AuthSession) -> BackendClient:
    return backend_factory.for_token(student_session.access_token)


# Application fixtures
@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the application with its lifespan running."""
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


async def api_signup(client: AsyncClient, role: UserRole = UserRole.LANDLORD, **overrides) -> dict:
    """Register through the JSON API and return the token response."""
    payload = AccountFactory.create_signup_data(role=role)
    payload.update(overrides)
    response = await client.post("/api/v1/auth/signup", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def listing_form_data(**overrides) -> dict:
    data = {
        "title": "Cosy room near campus",
        "description": "Bright room with a desk",
        "price": "1500",
        "address": "Plot 12, Freedom Avenue",
        "location": "Kalulushi",
        "property_type": "apartment",
        "latitude": "-12.80532",
        "longitude": "28.24403",
    }
    data.update(overrides)
    return data


def image_files(count: int = 1, content_type: str = "image/png") -> list:
    return [
        ("images", (f"photo {index}.png", make_image_bytes(), content_type))
        for index in range(count)
    ]
