"""
Tables of the local backend.
Mirrors the schema a hosted backend is expected to expose.
"""

from housing.models.profile import AuthUser, Profile
from housing.models.property import Property, PropertyType
from housing.models.amenity import Amenity, PropertyAmenity, DEFAULT_AMENITIES
from housing.models.image import PropertyImage

# Export all models for easy importing
__all__ = [
    "AuthUser",
    "Profile",
    "Property",
    "PropertyType",
    "Amenity",
    "PropertyAmenity",
    "DEFAULT_AMENITIES",
    "PropertyImage",
]
