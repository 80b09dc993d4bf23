"""
Amenity reference list and its join table with properties.
"""

from sqlalchemy import Integer, String, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from housing.database import Base
import uuid


DEFAULT_AMENITIES = [
    "Wi-Fi",
    "Water",
    "Electricity",
    "Parking",
    "Security",
    "Furnished",
    "Laundry",
    "Study Desk",
]


class Amenity(Base):
    """Amenity reference row, read-only to the application."""

    __tablename__ = "amenities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class PropertyAmenity(Base):
    """Many-to-many join between properties and amenities."""

    __tablename__ = "property_amenities"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        primary_key=True
    )

    amenity_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("amenities.id", ondelete="CASCADE"),
        primary_key=True
    )
