"""
Amenity API endpoints.
"""

from typing import List
from fastapi import APIRouter, Depends, status

from housing.schemas.amenity import AmenityRecord
from housing.services.listing_browser import ListingBrowserService
from housing.utils.dependencies import get_listing_browser


router = APIRouter(prefix="/amenities", tags=["Amenities"])


@router.get(
    "",
    response_model=List[AmenityRecord],
    status_code=status.HTTP_200_OK,
    summary="List amenities",
    description="Every amenity a listing can offer, alphabetically"
)
async def list_amenities(
    browser: ListingBrowserService = Depends(get_listing_browser)
) -> List[AmenityRecord]:
    return await browser.list_amenities()
