"""Listing browser and listing detail web routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError as PydanticValidationError

from housing.models.property import PropertyType
from housing.schemas.property import ListingFilters
from housing.services.listing_browser import ListingBrowserService
from housing.utils.dependencies import get_listing_browser
from housing.utils.exceptions import PropertyNotFoundError, RemoteReadError
from housing.web.dependencies import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_class=HTMLResponse)
async def browse_properties(
    request: Request,
    browser: ListingBrowserService = Depends(get_listing_browser),
) -> HTMLResponse:
    """Browse listings; every filter change reloads the page with new query parameters."""
    params = request.query_params
    raw_filters = {
        "location": params.get("location", ""),
        "property_type": params.get("type", ""),
        "min_price": params.get("min_price", ""),
        "max_price": params.get("max_price", ""),
    }

    error = None
    try:
        filters = ListingFilters(**raw_filters)
    except PydanticValidationError:
        error = "Some filters were invalid and have been cleared."
        filters = ListingFilters.reset()

    try:
        listings = await browser.search(filters)
    except RemoteReadError as e:
        listings = []
        error = str(e)

    return render(
        request,
        "properties/list.html",
        {
            "listings": listings,
            "filters": filters,
            "property_types": list(PropertyType),
            "error": error,
        },
    )


@router.get("/{property_id}", response_class=HTMLResponse)
async def property_detail(
    request: Request,
    property_id: str,
    browser: ListingBrowserService = Depends(get_listing_browser),
) -> HTMLResponse:
    """Listing detail with landlord contact and map."""
    try:
        listing_id = uuid.UUID(property_id)
        detail = await browser.get_listing(listing_id)
    except (ValueError, PropertyNotFoundError):
        return render(request, "not_found.html", {"what": "Property"}, status_code=404)

    return render(request, "properties/detail.html", {"detail": detail})
