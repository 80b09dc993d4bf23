"""
Pydantic schemas for property images and uploaded files.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
import uuid


class PropertyImageRecord(BaseModel):
    """Image metadata row as stored by the backend."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[uuid.UUID] = None
    property_id: uuid.UUID
    storage_path: str
    is_primary: bool = False
    public_url: Optional[str] = None
    created_at: Optional[datetime] = None


class ImageUpload(BaseModel):
    """A file selected on the listing form, read into memory."""

    filename: str = Field(..., description="Original file name as sent by the browser")
    content_type: str = Field("", description="Declared MIME type")
    data: bytes = Field(..., repr=False)

    @property
    def size(self) -> int:
        return len(self.data)
