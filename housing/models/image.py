"""
PropertyImage table of the local backend.
Maps uploaded blobs to their property and marks the cover image.
"""

from sqlalchemy import String, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from housing.database import Base
import uuid
from typing import Optional


class PropertyImage(Base):
    """
    Image metadata row.
    Exactly one image per property is expected to be primary; nothing here enforces it.
    """

    __tablename__ = "property_images"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    storage_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Key of the blob inside the storage bucket"
    )

    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether this is the cover image for the property"
    )

    public_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True
    )


# Index for finding primary images quickly
primary_images_index = Index(
    "idx_property_images_primary",
    PropertyImage.property_id,
    PropertyImage.is_primary
)
