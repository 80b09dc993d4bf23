"""
Tests for the local backend: SQL row store, file storage bucket and JWT auth provider.
"""

import uuid

import pytest

from housing.backend import AuthError, BackendError
from housing.backend.local import LocalBackendFactory
from housing.utils.auth import create_access_token
from tests.conftest import TEST_PASSWORD, AccountFactory, make_image_bytes


class TestLocalRowStore:
    """Test table queries against the SQL row store."""

    @pytest.mark.asyncio
    async def test_amenities_are_seeded(self, anonymous_client):
        rows = await anonymous_client.table("amenities").select("id, name").order("id").execute()

        assert rows[0] == {"id": 1, "name": "Wi-Fi"}
        assert len(rows) == 8

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, backend_factory, anonymous_client):
        await backend_factory.seed_amenities()

        assert len(await anonymous_client.table("amenities").execute()) == 8

    @pytest.mark.asyncio
    async def test_insert_returns_stored_rows(self, landlord_client, landlord_session):
        rows = await landlord_client.table("properties").insert({
            "title": "Room",
            "price": "1200.50",
            "latitude": -12.8,
            "longitude": 28.2,
            "landlord_id": str(landlord_session.user.id),
        })

        assert len(rows) == 1
        assert isinstance(rows[0]["id"], uuid.UUID)
        assert str(rows[0]["price"]) == "1200.50"
        assert rows[0]["created_at"] is not None

    @pytest.mark.asyncio
    async def test_insert_nothing(self, landlord_client):
        assert await landlord_client.table("properties").insert([]) == []

    @pytest.mark.asyncio
    async def test_first_returns_none_when_empty(self, anonymous_client):
        assert await anonymous_client.table("properties").eq("title", "missing").first() is None

    @pytest.mark.asyncio
    async def test_in_filter(self, anonymous_client):
        rows = await anonymous_client.table("amenities").in_("id", ["1", "3"]).order("id").execute()

        assert [row["id"] for row in rows] == [1, 3]

    @pytest.mark.asyncio
    async def test_unfiltered_delete_is_refused(self, anonymous_client):
        with pytest.raises(BackendError) as exc_info:
            await anonymous_client.table("amenities").delete()

        assert exc_info.value.code == "UNFILTERED_DELETE"

    @pytest.mark.asyncio
    async def test_delete_returns_deleted_rows(self, anonymous_client):
        deleted = await anonymous_client.table("amenities").eq("name", "Laundry").delete()

        assert [row["name"] for row in deleted] == ["Laundry"]
        assert len(await anonymous_client.table("amenities").execute()) == 7

    @pytest.mark.asyncio
    async def test_invalid_uuid_filter(self, anonymous_client):
        with pytest.raises(BackendError) as exc_info:
            await anonymous_client.table("properties").eq("id", "not-a-uuid").execute()

        assert exc_info.value.code == "22P02"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_column(self, anonymous_client):
        with pytest.raises(BackendError) as exc_info:
            await anonymous_client.table("properties").eq("colour", "red").execute()

        assert exc_info.value.code == "42703"

    @pytest.mark.asyncio
    async def test_unknown_table(self, anonymous_client):
        with pytest.raises(BackendError) as exc_info:
            await anonymous_client.table("bookings").execute()

        assert exc_info.value.code == "42P01"

    @pytest.mark.asyncio
    async def test_duplicate_key_is_conflict(self, anonymous_client):
        with pytest.raises(BackendError) as exc_info:
            await anonymous_client.table("amenities").insert({"name": "Wi-Fi"})

        assert exc_info.value.status_code == 409


class TestLocalStorageBucket:
    """Test blob storage on the local filesystem."""

    @pytest.fixture
    def bucket(self, anonymous_client, settings):
        return anonymous_client.storage(settings.storage_bucket)

    @pytest.mark.asyncio
    async def test_upload_and_public_url(self, bucket, settings):
        data = make_image_bytes()
        path = await bucket.upload("owner/listing/1-photo.png", data, "image/png")

        stored = bucket.resolve(path)
        assert stored.read_bytes() == data
        assert bucket.get_public_url(path) == "/storage/properties/owner/listing/1-photo.png"

    @pytest.mark.asyncio
    async def test_duplicate_upload_without_upsert(self, bucket):
        await bucket.upload("a/b/1-x.png", b"first", "image/png")

        with pytest.raises(BackendError) as exc_info:
            await bucket.upload("a/b/1-x.png", b"second", "image/png")
        assert exc_info.value.status_code == 409

        await bucket.upload("a/b/1-x.png", b"second", "image/png", upsert=True)
        assert bucket.resolve("a/b/1-x.png").read_bytes() == b"second"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["../escape.png", "/etc/passwd", "a/../../b.png", ""])
    async def test_keys_cannot_escape_bucket(self, bucket, path):
        with pytest.raises(BackendError) as exc_info:
            await bucket.upload(path, b"data", "image/png")

        assert exc_info.value.code == "InvalidKey"

    @pytest.mark.asyncio
    async def test_remove_missing_blob_is_quiet(self, bucket):
        await bucket.upload("a/b/1-x.png", b"data", "image/png")

        await bucket.remove(["a/b/1-x.png", "a/b/2-gone.png"])

        assert not bucket.resolve("a/b/1-x.png").exists()

    @pytest.mark.asyncio
    async def test_unknown_bucket(self, anonymous_client):
        with pytest.raises(KeyError):
            anonymous_client.storage("avatars")


class TestLocalAuthProvider:
    """Test password accounts and JWT sessions."""

    @pytest.mark.asyncio
    async def test_sign_up_creates_profile(self, anonymous_client, landlord_session):
        profile = await anonymous_client.table("profiles").eq("id", str(landlord_session.user.id)).first()

        assert profile["role"] == "landlord"
        assert profile["name"] == "Test Landlord"

    @pytest.mark.asyncio
    async def test_sign_in_and_get_user(self, anonymous_client, landlord_session):
        session = await anonymous_client.auth.sign_in_with_password(
            landlord_session.user.email.upper(), TEST_PASSWORD
        )

        user = await anonymous_client.auth.get_user(session.access_token)
        assert user.id == landlord_session.user.id
        assert session.expires_in == 3600

    @pytest.mark.asyncio
    async def test_wrong_password(self, anonymous_client, landlord_session):
        with pytest.raises(AuthError) as exc_info:
            await anonymous_client.auth.sign_in_with_password(landlord_session.user.email, "wrong-password")

        assert exc_info.value.code == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_duplicate_sign_up(self, anonymous_client, landlord_session):
        with pytest.raises(AuthError) as exc_info:
            await anonymous_client.auth.sign_up(landlord_session.user.email, TEST_PASSWORD)

        assert exc_info.value.code == "user_already_exists"

    @pytest.mark.asyncio
    async def test_refresh_session(self, anonymous_client, landlord_session):
        refreshed = await anonymous_client.auth.refresh_session(landlord_session.refresh_token)

        assert refreshed.user.id == landlord_session.user.id
        assert refreshed.access_token != landlord_session.access_token

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, anonymous_client, landlord_session):
        with pytest.raises(AuthError):
            await anonymous_client.auth.get_user(landlord_session.refresh_token)

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, anonymous_client, settings):
        token = create_access_token(uuid.uuid4(), "ghost@example.com", settings.jwt_secret_key)

        with pytest.raises(AuthError):
            await anonymous_client.auth.get_user(token)

    @pytest.mark.asyncio
    async def test_current_user_of_bound_client(self, landlord_client, landlord_session, anonymous_client):
        assert (await landlord_client.current_user()).id == landlord_session.user.id
        assert await anonymous_client.current_user() is None
        assert await anonymous_client.with_token("garbage").current_user() is None


class TestLocalBackendFactory:

    @pytest.mark.asyncio
    async def test_health(self, backend_factory):
        assert await backend_factory.health() is True

    @pytest.mark.asyncio
    async def test_not_started(self, settings):
        factory = LocalBackendFactory(settings)

        assert await factory.health() is False
        with pytest.raises(RuntimeError):
            factory.for_token(None)

    @pytest.mark.asyncio
    async def test_for_token_binds_token(self, backend_factory, student_session):
        client = backend_factory.for_token(student_session.access_token)

        assert client.access_token == student_session.access_token
        assert client.with_token(None).access_token is None

    @pytest.mark.asyncio
    async def test_accounts_have_distinct_ids(self, backend_factory):
        first = await AccountFactory.create_account(backend_factory)
        second = await AccountFactory.create_account(backend_factory)

        assert first.user.id != second.user.id
