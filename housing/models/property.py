"""
Property table of the local backend.
Stores listing data with location, pricing and landlord ownership.
"""

from sqlalchemy import String, Text, Numeric, Float, Index, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from housing.database import Base
from decimal import Decimal
import enum
import uuid
from typing import Optional


class PropertyType(str, enum.Enum):
    """Kinds of student accommodation."""
    APARTMENT = "apartment"
    SHARED = "shared"
    HOSTEL = "hostel"


class Property(Base):
    """
    Property listing row.
    Created once by the listing workflow; the landlord reference points at a profile.
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property listing title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Detailed property description"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True,
        comment="Monthly rent in local currency"
    )

    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Latitude picked on the map"
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Longitude picked on the map"
    )

    address: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    location: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Area or neighbourhood used by the listing browser"
    )

    type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        comment="apartment, shared or hostel"
    )

    landlord_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )


# Filter combination used by the listing browser
property_browse_index = Index(
    "idx_properties_location_type_price",
    Property.location,
    Property.type,
    Property.price
)
