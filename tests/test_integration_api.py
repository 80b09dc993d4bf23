"""
Integration tests for the JSON API endpoints.
Tests complete request/response cycles against the local backend.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from housing.schemas.auth import UserRole
from tests.conftest import api_signup, auth_headers, image_files, listing_form_data


class TestAuthenticationEndpoints:
    """Integration tests for authentication endpoints."""

    @pytest.mark.asyncio
    async def test_signup_and_me(self, async_client: AsyncClient):
        """Test that a new account can read its own profile."""
        tokens = await api_signup(async_client, UserRole.LANDLORD, name="Grace Banda")

        response = await async_client.get("/api/v1/auth/me", headers=auth_headers(tokens))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["id"] == tokens["user"]["id"]
        assert data["profile"]["role"] == "landlord"
        assert data["profile"]["name"] == "Grace Banda"

    @pytest.mark.asyncio
    async def test_signup_duplicate_email(self, async_client: AsyncClient):
        await api_signup(async_client, email="dup@example.com")

        response = await async_client.post("/api/v1/auth/signup", json={
            "email": "dup@example.com",
            "password": "testpassword123",
            "name": "Second",
            "role": "student",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    @pytest.mark.asyncio
    async def test_signup_short_password(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/signup", json={
            "email": "short@example.com",
            "password": "short",
            "name": "Short",
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_login_success(self, async_client: AsyncClient):
        await api_signup(async_client, email="login@example.com")

        response = await async_client.post("/api/v1/auth/login", json={
            "email": "login@example.com",
            "password": "testpassword123",
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]

    @pytest.mark.asyncio
    async def test_login_invalid_credentials(self, async_client: AsyncClient):
        await api_signup(async_client, email="wrong@example.com")

        response = await async_client.post("/api/v1/auth/login", json={
            "email": "wrong@example.com",
            "password": "wrongpassword",
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_me_requires_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_logout(self, async_client: AsyncClient):
        tokens = await api_signup(async_client)

        response = await async_client.post("/api/v1/auth/logout", headers=auth_headers(tokens))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Successfully logged out"}


class TestListingEndpoints:
    """Integration tests for listing endpoints."""

    @pytest.mark.asyncio
    async def test_create_listing_as_landlord(self, async_client: AsyncClient):
        """Test the complete creation flow with images and amenities."""
        tokens = await api_signup(async_client, UserRole.LANDLORD)

        response = await async_client.post(
            "/api/v1/listings",
            data={**listing_form_data(), "amenity_ids": ["1", "3"]},
            files=image_files(3),
            headers=auth_headers(tokens)
        )

        assert response.status_code == status.HTTP_201_CREATED, response.text
        data = response.json()
        assert data["listing"]["title"] == "Cosy room near campus"
        assert data["listing"]["landlord_id"] == tokens["user"]["id"]
        assert [image["is_primary"] for image in data["images"]] == [True, False, False]
        assert data["amenity_ids"] == [1, 3]
        assert data["progress"] == 100
        assert data["progress_history"] == [16, 33, 50, 66, 83, 100]

    @pytest.mark.asyncio
    async def test_create_listing_requires_login(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/listings", data=listing_form_data(), files=image_files(1)
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_students_cannot_create_listings(self, async_client: AsyncClient):
        tokens = await api_signup(async_client, UserRole.STUDENT)

        response = await async_client.post(
            "/api/v1/listings",
            data=listing_form_data(),
            files=image_files(1),
            headers=auth_headers(tokens)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_create_listing_without_images(self, async_client: AsyncClient):
        tokens = await api_signup(async_client, UserRole.LANDLORD)

        response = await async_client.post(
            "/api/v1/listings", data=listing_form_data(), headers=auth_headers(tokens)
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"]["message"] == "Please upload at least one image."

    @pytest.mark.asyncio
    async def test_create_listing_rejects_non_image(self, async_client: AsyncClient):
        tokens = await api_signup(async_client, UserRole.LANDLORD)

        response = await async_client.post(
            "/api/v1/listings",
            data=listing_form_data(),
            files=image_files(1, content_type="application/pdf"),
            headers=auth_headers(tokens)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Only image files are allowed."

        listings = await async_client.get("/api/v1/listings")
        assert listings.json() == []

    @pytest.mark.asyncio
    async def test_search_and_detail(self, async_client: AsyncClient):
        """Test that created listings can be searched and opened."""
        tokens = await api_signup(async_client, UserRole.LANDLORD, name="Search Landlord")
        for title, price, property_type in [("Hostel bed", "800", "hostel"), ("Flat", "2500", "apartment")]:
            response = await async_client.post(
                "/api/v1/listings",
                data=listing_form_data(title=title, price=price, property_type=property_type),
                files=image_files(1),
                headers=auth_headers(tokens)
            )
            assert response.status_code == status.HTTP_201_CREATED

        everything = await async_client.get("/api/v1/listings")
        hostels = await async_client.get("/api/v1/listings", params={"type": "hostel"})
        expensive = await async_client.get("/api/v1/listings", params={"min_price": "1000"})

        assert [card["title"] for card in everything.json()] == ["Flat", "Hostel bed"]
        assert [card["title"] for card in hostels.json()] == ["Hostel bed"]
        assert [card["title"] for card in expensive.json()] == ["Flat"]

        card = everything.json()[0]
        assert card["image_url"].startswith("/storage/properties/")

        detail = await async_client.get(f"/api/v1/listings/{card['id']}")
        assert detail.status_code == status.HTTP_200_OK
        assert detail.json()["landlord"]["name"] == "Search Landlord"
        assert detail.json()["image_url"] == card["image_url"]

        image = await async_client.get(card["image_url"])
        assert image.status_code == status.HTTP_200_OK
        assert image.content.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_negative_price_filter_is_rejected(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/listings", params={"min_price": "-1"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_listing_not_found(self, async_client: AsyncClient):
        response = await async_client.get(f"/api/v1/listings/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_my_listings(self, async_client: AsyncClient):
        mine = await api_signup(async_client, UserRole.LANDLORD)
        other = await api_signup(async_client, UserRole.LANDLORD)
        for tokens, title in [(mine, "Mine"), (other, "Theirs")]:
            await async_client.post(
                "/api/v1/listings",
                data=listing_form_data(title=title),
                files=image_files(1),
                headers=auth_headers(tokens)
            )

        response = await async_client.get("/api/v1/listings/mine", headers=auth_headers(mine))

        assert response.status_code == status.HTTP_200_OK
        assert [card["title"] for card in response.json()] == ["Mine"]


class TestMiscEndpoints:

    @pytest.mark.asyncio
    async def test_amenities(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/amenities")

        assert response.status_code == status.HTTP_200_OK
        names = [amenity["name"] for amenity in response.json()]
        assert names == sorted(names)
        assert len(names) == 8

    @pytest.mark.asyncio
    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert response.json()["backend"] == "local"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, async_client: AsyncClient):
        response = await async_client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    @pytest.mark.asyncio
    async def test_unknown_api_route_is_json(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/bookings")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "HTTP_404"

    @pytest.mark.asyncio
    async def test_oversized_json_body_is_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/auth/login",
            content=b"x" * (1024 * 1024 + 1),
            headers={"Content-Type": "application/json", "X-Request-ID": "big-1"}
        )

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
        assert response.headers["X-Request-ID"] == "big-1"
