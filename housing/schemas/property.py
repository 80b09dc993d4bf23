"""
Pydantic schemas for property rows, listing forms, filters and listing views.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime
from decimal import Decimal, InvalidOperation
import uuid

from housing.models.property import PropertyType
from housing.schemas.auth import Profile
from housing.schemas.image import PropertyImageRecord


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class PropertyRecord(BaseModel):
    """Property row as stored by the backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    price: Decimal
    latitude: float
    longitude: float
    address: Optional[str] = None
    location: Optional[str] = None
    property_type: Optional[PropertyType] = Field(None, alias="type")
    landlord_id: uuid.UUID
    created_at: Optional[datetime] = None

    @field_validator("property_type", mode="before")
    @classmethod
    def unknown_type_is_none(cls, v):
        v = _blank_to_none(v)
        if v is not None and v not in [t.value for t in PropertyType] and not isinstance(v, PropertyType):
            return None
        return v


class ListingForm(BaseModel):
    """
    Raw values of the listing creation form.

    Values stay loosely typed here; ListingCreationService performs the
    user-facing validation so every message reaches the form unchanged.
    """

    title: str = ""
    description: str = ""
    price: Union[str, Decimal, int, float, None] = ""
    address: str = ""
    location: str = ""
    property_type: str = ""
    latitude: float = -12.80532
    longitude: float = 28.24403
    amenity_ids: List[int] = Field(default_factory=list)

    @field_validator("amenity_ids", mode="before")
    @classmethod
    def drop_duplicate_amenities(cls, v):
        if v is None:
            return []
        seen = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return seen

    def parsed_price(self) -> Optional[Decimal]:
        """Price as a Decimal, None when missing or not numeric."""
        value = _blank_to_none(self.price)
        if value is None:
            return None
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        if not price.is_finite():
            return None
        return price


class ListingFilters(BaseModel):
    """Filter fields of the listing browser; every field is optional."""

    location: Optional[str] = None
    property_type: Optional[PropertyType] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)

    @field_validator("location", mode="before")
    @classmethod
    def clean_location(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("property_type", mode="before")
    @classmethod
    def all_types_is_none(cls, v):
        v = _blank_to_none(v)
        if isinstance(v, str) and v.lower() == "all":
            return None
        return v

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def blank_price_is_none(cls, v):
        return _blank_to_none(v)

    @classmethod
    def reset(cls) -> "ListingFilters":
        """Filters with every field cleared."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())

    def as_query_params(self) -> dict:
        """Non-empty filters as page query parameters."""
        params = {}
        if self.location:
            params["location"] = self.location
        if self.property_type:
            params["type"] = self.property_type.value
        if self.min_price is not None:
            params["min_price"] = str(self.min_price)
        if self.max_price is not None:
            params["max_price"] = str(self.max_price)
        return params


class ListingCard(BaseModel):
    """Property annotated with the URL of its cover image."""

    id: uuid.UUID
    title: str
    price: Decimal
    location: Optional[str] = None
    address: Optional[str] = None
    property_type: Optional[PropertyType] = None
    created_at: Optional[datetime] = None
    image_url: str

    @classmethod
    def from_record(cls, record: PropertyRecord, image_url: str) -> "ListingCard":
        return cls(
            id=record.id,
            title=record.title,
            price=record.price,
            location=record.location,
            address=record.address,
            property_type=record.property_type,
            created_at=record.created_at,
            image_url=image_url
        )


class ListingDetail(BaseModel):
    """Everything the detail page shows about one listing."""

    listing: PropertyRecord
    landlord: Optional[Profile] = None
    amenities: List[str] = Field(default_factory=list)
    image_url: str
    gallery: List[str] = Field(default_factory=list)


class ListingCreateResult(BaseModel):
    """Outcome of a successful listing creation."""

    listing: PropertyRecord
    images: List[PropertyImageRecord]
    amenity_ids: List[int] = Field(default_factory=list)
    progress: int = 100
    progress_history: List[int] = Field(default_factory=list)

    @property
    def primary_image(self) -> Optional[PropertyImageRecord]:
        return next((image for image in self.images if image.is_primary), None)
