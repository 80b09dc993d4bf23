"""
Listing API endpoints for searching, viewing and creating property listings.
"""

from typing import List, Optional
from uuid import UUID
from decimal import Decimal
from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile, status

from housing.schemas.auth import Profile
from housing.schemas.property import (
    ListingCard,
    ListingCreateResult,
    ListingDetail,
    ListingFilters,
    ListingForm
)
from housing.services.listing_browser import ListingBrowserService
from housing.services.listing_creation import ListingCreationService
from housing.utils.dependencies import (
    get_current_landlord,
    get_listing_browser,
    get_listing_creation
)
from housing.utils.file_utils import read_uploads


router = APIRouter(prefix="/listings", tags=["Listings"])


@router.get(
    "",
    response_model=List[ListingCard],
    status_code=status.HTTP_200_OK,
    summary="Search listings",
    description="Listings newest first, filtered by location, type and price range"
)
async def search_listings(
    location: Optional[str] = Query(None, description="Exact location (area) filter"),
    property_type: Optional[str] = Query(None, alias="type", description="apartment, shared, hostel or all"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum monthly price"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum monthly price"),
    browser: ListingBrowserService = Depends(get_listing_browser)
) -> List[ListingCard]:
    filters = ListingFilters(
        location=location,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price
    )
    return await browser.search(filters)


@router.post(
    "",
    response_model=ListingCreateResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing",
    description="Create a listing with its amenities and images (landlords only)"
)
async def create_listing(
    title: str = Form(""),
    description: str = Form(""),
    price: str = Form(""),
    address: str = Form(""),
    location: str = Form(""),
    property_type: str = Form(""),
    latitude: float = Form(-12.80532),
    longitude: float = Form(28.24403),
    amenity_ids: Optional[List[int]] = Form(None),
    images: Optional[List[UploadFile]] = File(None, description="Image files; the first becomes the cover"),
    landlord: Profile = Depends(get_current_landlord),
    creation: ListingCreationService = Depends(get_listing_creation)
) -> ListingCreateResult:
    """
    Create a listing for the signed-in landlord.

    Raises:
        ValidationError: If a field is invalid or no image was sent
        UnsupportedFileTypeError: If a file is not an image
        FileSizeExceededError: If an image is too large
        RemoteWriteError: If a backend write fails
    """
    form = ListingForm(
        title=title,
        description=description,
        price=price,
        address=address,
        location=location,
        property_type=property_type,
        latitude=latitude,
        longitude=longitude,
        amenity_ids=amenity_ids or []
    )
    uploads = await read_uploads(images)
    return await creation.create_listing(form, uploads)


@router.get(
    "/mine",
    response_model=List[ListingCard],
    status_code=status.HTTP_200_OK,
    summary="My listings",
    description="Listings of the signed-in landlord"
)
async def my_listings(
    landlord: Profile = Depends(get_current_landlord),
    browser: ListingBrowserService = Depends(get_listing_browser)
) -> List[ListingCard]:
    return await browser.listings_for_landlord(landlord.id)


@router.get(
    "/{property_id}",
    response_model=ListingDetail,
    status_code=status.HTTP_200_OK,
    summary="Get listing details",
    description="Listing with landlord contact, amenities and images"
)
async def get_listing(
    property_id: UUID = Path(..., description="Property ID"),
    browser: ListingBrowserService = Depends(get_listing_browser)
) -> ListingDetail:
    """
    Raises:
        PropertyNotFoundError: If the listing doesn't exist
    """
    return await browser.get_listing(property_id)
