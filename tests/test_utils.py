"""
Tests for upload helpers, display formatting, listing filters and error formatting.
"""

import io
import json
from decimal import Decimal

import pytest
from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import Headers

from housing.backend import AuthError, BackendError
from housing.schemas.property import ListingFilters
from housing.services.error_handler import ErrorHandlerService
from housing.utils.exceptions import (
    FileSizeExceededError,
    PropertyNotFoundError,
    RemoteWriteError,
    UnsupportedFileTypeError,
    ValidationError
)
from housing.utils.file_utils import ImageValidator, build_storage_key, read_uploads, sanitize_filename
from housing.web.formatting import format_amount, format_price, property_type_label
from tests.conftest import make_upload


class TestFilenames:
    """Test filename sanitizing and storage keys."""

    @pytest.mark.parametrize("name,expected", [
        ("My Photo (1).JPG", "my_photo_1_.jpg"),
        ("kitchen.png", "kitchen.png"),
        ("bad/../name.png", "bad_.._name.png"),
        ("über-café.webp", "_ber-caf_.webp"),
        ("", "image"),
    ])
    def test_sanitize_filename(self, name, expected):
        assert sanitize_filename(name) == expected

    def test_build_storage_key(self):
        key = build_storage_key("owner-1", "listing-1", "Front Door.PNG", 1700000000123)

        assert key == "owner-1/listing-1/1700000000123-front_door.png"

    def test_build_storage_key_uses_current_time(self):
        key = build_storage_key("o", "l", "a.png")

        timestamp = key.split("/")[2].split("-")[0]
        assert timestamp.isdigit()
        assert len(timestamp) == 13


class TestImageValidator:
    """Test image type and size checks."""

    def test_accepts_image(self):
        ImageValidator(1024).validate(make_upload())

    @pytest.mark.parametrize("content_type", ["", "text/plain", "application/pdf"])
    def test_rejects_non_image(self, content_type):
        with pytest.raises(UnsupportedFileTypeError):
            ImageValidator().validate(make_upload("x.png", content_type))

    def test_rejects_oversized(self):
        with pytest.raises(FileSizeExceededError) as exc_info:
            ImageValidator().validate(make_upload("big.png", data=b"x" * (5 * 1024 * 1024 + 1)))

        assert exc_info.value.detail == "Image size must be less than 5MB."

    def test_size_limit_is_inclusive(self):
        ImageValidator(10).validate_size(10)


class TestReadUploads:

    @pytest.mark.asyncio
    async def test_skips_empty_parts(self):
        files = [
            UploadFile(io.BytesIO(b"abc"), filename="a.png", headers=Headers({"content-type": "image/png"})),
            UploadFile(io.BytesIO(b""), filename=""),
            UploadFile(io.BytesIO(b"def"), filename="b.jpg", headers=Headers({"content-type": "image/jpeg"})),
        ]

        uploads = await read_uploads(files)

        assert [(u.filename, u.content_type, u.data) for u in uploads] == [
            ("a.png", "image/png", b"abc"),
            ("b.jpg", "image/jpeg", b"def"),
        ]

    @pytest.mark.asyncio
    async def test_no_files(self):
        assert await read_uploads(None) == []


class TestFormatting:
    """Test price and type labels used by the templates."""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("1500.00"), "1500"),
        (Decimal("1500.50"), "1500.5"),
        (800, "800"),
        ("2500.25", "2500.25"),
    ])
    def test_format_amount(self, value, expected):
        assert format_amount(value) == expected

    def test_format_price(self):
        assert format_price(Decimal("1500.00")) == "ZMW 1500/month"
        assert format_price(700, "USD") == "USD 700/month"

    def test_property_type_label(self):
        assert property_type_label("hostel") == "Hostel"
        assert property_type_label(None) == "Any type"


class TestListingFilters:
    """Test parsing of browser filter fields."""

    def test_blank_fields_are_unset(self):
        filters = ListingFilters(location="  ", property_type="", min_price="", max_price="")

        assert filters.is_empty
        assert filters.as_query_params() == {}

    def test_all_type_is_unset(self):
        assert ListingFilters(property_type="all").property_type is None

    def test_query_params(self):
        filters = ListingFilters(location=" Kitwe ", property_type="shared", min_price="100")

        assert filters.as_query_params() == {"location": "Kitwe", "type": "shared", "min_price": "100"}

    @pytest.mark.parametrize("field,value", [
        ("min_price", "-5"),
        ("max_price", "cheap"),
        ("property_type", "castle"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(PydanticValidationError):
            ListingFilters(**{field: value})

    def test_reset(self):
        assert ListingFilters.reset().is_empty


class TestErrorFormatting:
    """Test structured error bodies."""

    def test_format_error_response(self):
        body = ErrorHandlerService.format_error_response(
            "NOT_FOUND", "Property not found", request_id="abc123"
        )

        assert body["error"]["code"] == "NOT_FOUND"
        assert body["error"]["message"] == "Property not found"
        assert body["error"]["request_id"] == "abc123"
        assert "timestamp" in body["error"]
        assert "details" not in body["error"]

    def test_api_exception_response(self):
        response = ErrorHandlerService.handle_api_exception(PropertyNotFoundError("42"))

        assert response.status_code == 404

    def test_validation_error_details(self):
        error = ValidationError("Invalid form", field_errors=[{"field": "price", "message": "required"}])

        response = ErrorHandlerService.handle_api_exception(error)

        assert response.status_code == 422
        assert b"price" in response.body

    def test_field_error_from_field_name(self):
        error = ValidationError("Title is required.", field="title")

        assert error.field_errors == [{"field": "title", "message": "Title is required."}]

    def test_remote_error_message(self):
        error = RemoteWriteError("adding property", BackendError("duplicate key", status_code=409))

        assert error.detail == "Error adding property: duplicate key"
        assert error.error_code == "REMOTE_WRITE_FAILED"
        assert error.status_code == 502

    def test_image_errors_keep_filename(self):
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            ImageValidator().validate(make_upload("notes.pdf", "application/pdf", b"%PDF"))

        assert exc_info.value.filename == "notes.pdf"
        assert exc_info.value.content_type == "application/pdf"

    @pytest.mark.parametrize("error,expected", [
        (AuthError(), (401, "UNAUTHORIZED")),
        (BackendError("denied", status_code=401, code="42501"), (403, "FORBIDDEN")),
        (BackendError("forbidden", status_code=403), (403, "FORBIDDEN")),
        (BackendError("Backend unreachable", status_code=503), (503, "BACKEND_UNAVAILABLE")),
        (BackendError("boom", status_code=500), (502, "BACKEND_ERROR")),
    ])
    def test_backend_error_classification(self, error, expected):
        response = ErrorHandlerService.handle_backend_error(error)

        assert (response.status_code, json.loads(response.body)["error"]["code"]) == expected
        assert error.message.encode() not in response.body
