"""Home page web routes."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from housing.services.listing_browser import ListingBrowserService
from housing.utils.dependencies import get_listing_browser
from housing.utils.exceptions import RemoteReadError
from housing.web.dependencies import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    browser: ListingBrowserService = Depends(get_listing_browser),
) -> HTMLResponse:
    """Landing page with the latest listings."""
    error = None
    try:
        listings = await browser.latest()
    except RemoteReadError as e:
        listings = []
        error = str(e)

    return render(request, "home/index.html", {"listings": listings, "error": error})
