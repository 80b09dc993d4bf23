"""
Pydantic schemas validating backend rows, forms and responses.
"""

# Authentication schemas
from .auth import (
    UserRole,
    AuthUser,
    AuthSession,
    Profile,
    LoginRequest,
    SignUpRequest,
    TokenResponse,
    CurrentUserResponse
)

# Image schemas
from .image import (
    PropertyImageRecord,
    ImageUpload
)

# Amenity schemas
from .amenity import AmenityRecord

# Property schemas
from .property import (
    PropertyRecord,
    ListingForm,
    ListingFilters,
    ListingCard,
    ListingDetail,
    ListingCreateResult
)

__all__ = [
    # Authentication
    "UserRole",
    "AuthUser",
    "AuthSession",
    "Profile",
    "LoginRequest",
    "SignUpRequest",
    "TokenResponse",
    "CurrentUserResponse",

    # Image
    "PropertyImageRecord",
    "ImageUpload",

    # Amenity
    "AmenityRecord",

    # Property
    "PropertyRecord",
    "ListingForm",
    "ListingFilters",
    "ListingCard",
    "ListingDetail",
    "ListingCreateResult"
]
