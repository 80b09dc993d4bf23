"""Landlord dashboard and listing creation web routes."""

import logging
from typing import List, Optional, Union
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from housing.models.property import PropertyType
from housing.schemas.auth import Profile
from housing.schemas.property import ListingForm
from housing.services.auth import AuthService
from housing.services.listing_browser import ListingBrowserService
from housing.services.listing_creation import ListingCreationService
from housing.utils.dependencies import (
    get_auth_service,
    get_listing_browser,
    get_listing_creation,
)
from housing.utils.exceptions import APIException, RemoteReadError
from housing.utils.file_utils import read_uploads
from housing.web.dependencies import add_flash_message, render

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_profile(request: Request, auth_service: AuthService) -> Optional[Profile]:
    """Profile loaded by the session guard, or looked up when the guard let the request through."""
    profile = getattr(request.state, "profile", None)
    if profile is not None:
        return profile
    user = getattr(request.state, "user", None)
    if user is None:
        return None
    profile = await auth_service.get_profile(user.id)
    request.state.profile = profile
    return profile


def _sign_in_redirect(request: Request) -> RedirectResponse:
    settings = request.app.state.settings
    target = request.url.path
    if request.url.query:
        target += "?" + request.url.query
    return RedirectResponse(f"{settings.sign_in_path}?{urlencode({'next': target})}", status_code=303)


async def _render_form(
    request: Request,
    browser: ListingBrowserService,
    form: ListingForm,
    error: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    try:
        amenities = await browser.list_amenities()
    except RemoteReadError as e:
        logger.warning(f"Amenities unavailable for the listing form: {e}")
        amenities = []

    return render(
        request,
        "dashboard/new.html",
        {
            "form": form,
            "amenities": amenities,
            "property_types": list(PropertyType),
            "error": error,
        },
        status_code=status_code,
    )


def _initial_form(request: Request) -> ListingForm:
    settings = request.app.state.settings
    return ListingForm(latitude=settings.default_latitude, longitude=settings.default_longitude)


@router.get("", response_class=HTMLResponse, response_model=None)
async def dashboard(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    browser: ListingBrowserService = Depends(get_listing_browser),
) -> Union[HTMLResponse, RedirectResponse]:
    """Dashboard: a landlord sees their listings, a student sees their account."""
    profile = await _load_profile(request, auth_service)
    if profile is None:
        return _sign_in_redirect(request)

    listings = []
    error = None
    if profile.is_landlord:
        try:
            listings = await browser.listings_for_landlord(profile.id)
        except RemoteReadError as e:
            error = str(e)

    return render(
        request,
        "dashboard/index.html",
        {"profile": profile, "listings": listings, "error": error},
    )


@router.get("/new", response_class=HTMLResponse, response_model=None)
async def new_listing_page(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    browser: ListingBrowserService = Depends(get_listing_browser),
) -> Union[HTMLResponse, RedirectResponse]:
    """Display the listing creation form."""
    profile = await _load_profile(request, auth_service)
    if profile is None:
        return _sign_in_redirect(request)
    if not profile.is_landlord:
        return RedirectResponse(request.app.state.settings.dashboard_path, status_code=303)

    return await _render_form(request, browser, _initial_form(request))


@router.post("/new", response_class=HTMLResponse, response_model=None)
async def create_listing_submit(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    price: str = Form(""),
    address: str = Form(""),
    location: str = Form(""),
    property_type: str = Form(""),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    amenity_ids: Optional[List[int]] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    auth_service: AuthService = Depends(get_auth_service),
    browser: ListingBrowserService = Depends(get_listing_browser),
    creation: ListingCreationService = Depends(get_listing_creation),
) -> Union[HTMLResponse, RedirectResponse]:
    """Process the listing form; on success the form starts over empty."""
    settings = request.app.state.settings
    form = ListingForm(
        title=title,
        description=description,
        price=price,
        address=address,
        location=location,
        property_type=property_type,
        latitude=settings.default_latitude if latitude is None else latitude,
        longitude=settings.default_longitude if longitude is None else longitude,
        amenity_ids=amenity_ids or [],
    )

    try:
        profile = await _load_profile(request, auth_service)
        if profile is not None and not profile.is_landlord:
            return RedirectResponse(settings.dashboard_path, status_code=303)

        uploads = await read_uploads(images)
        result = await creation.create_listing(form, uploads)
    except APIException as e:
        return await _render_form(request, browser, form, error=e.detail, status_code=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error while creating a listing: {e}", exc_info=True)
        return await _render_form(
            request, browser, form, error=f"An unexpected error occurred: {e}", status_code=500
        )

    logger.info(f"Listing {result.listing.id} submitted through the dashboard")
    add_flash_message(request, "Property added successfully!", "success")
    return RedirectResponse(request.url.path, status_code=303)
