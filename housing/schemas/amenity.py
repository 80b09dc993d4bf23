"""
Pydantic schemas for amenities.
"""

from pydantic import BaseModel, ConfigDict


class AmenityRecord(BaseModel):
    """Amenity reference row."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
