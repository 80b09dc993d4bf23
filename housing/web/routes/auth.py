"""Sign-in, sign-up and sign-out web routes."""

import logging
from typing import Union

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError

from housing.schemas.auth import SignUpRequest, UserRole
from housing.services.auth import AuthService
from housing.utils.cookies import clear_session_cookies, set_session_cookies
from housing.utils.dependencies import get_auth_service
from housing.utils.exceptions import APIException
from housing.web.dependencies import add_flash_message, render

logger = logging.getLogger(__name__)

router = APIRouter()


def _safe_next(next_url: str) -> str:
    """Only follow same-site relative redirects."""
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


@router.get("/sign-in", response_class=HTMLResponse, response_model=None)
async def sign_in_page(request: Request) -> Union[HTMLResponse, RedirectResponse]:
    """Display sign-in form."""
    if getattr(request.state, "user", None):
        return RedirectResponse("/", status_code=303)
    return render(request, "auth/sign_in.html", {"next": request.query_params.get("next", "/")})


@router.post("/sign-in", response_class=HTMLResponse, response_model=None)
async def sign_in(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next_url: str = Form("/"),
    auth_service: AuthService = Depends(get_auth_service),
) -> Union[HTMLResponse, RedirectResponse]:
    """Process sign-in form."""
    try:
        session = await auth_service.sign_in(email, password)
    except APIException as e:
        return render(
            request,
            "auth/sign_in.html",
            {"error": e.detail, "email": email, "next": next_url},
            status_code=400,
        )

    response = RedirectResponse(_safe_next(next_url), status_code=303)
    set_session_cookies(response, session, request.app.state.settings)
    add_flash_message(request, "Welcome back!", "success")
    return response


@router.get("/sign-up", response_class=HTMLResponse, response_model=None)
async def sign_up_page(request: Request) -> Union[HTMLResponse, RedirectResponse]:
    """Display registration form."""
    if getattr(request.state, "user", None):
        return RedirectResponse("/", status_code=303)
    return render(request, "auth/sign_up.html", {"roles": list(UserRole), "form": {}})


@router.post("/sign-up", response_class=HTMLResponse, response_model=None)
async def sign_up(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    password: str = Form(""),
    role: str = Form(UserRole.STUDENT.value),
    auth_service: AuthService = Depends(get_auth_service),
) -> Union[HTMLResponse, RedirectResponse]:
    """Process registration form."""
    form = {"name": name, "email": email, "phone": phone, "role": role}
    errors = {}

    try:
        data = SignUpRequest(name=name, email=email, phone=phone, password=password, role=role)
    except PydanticValidationError as e:
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "form"
            errors[field] = error["msg"]
        return render(
            request,
            "auth/sign_up.html",
            {"errors": errors, "form": form, "roles": list(UserRole)},
            status_code=400,
        )

    try:
        session = await auth_service.sign_up(data)
    except APIException as e:
        return render(
            request,
            "auth/sign_up.html",
            {"error": e.detail, "form": form, "roles": list(UserRole)},
            status_code=400,
        )

    settings = request.app.state.settings
    response = RedirectResponse(settings.dashboard_path, status_code=303)
    set_session_cookies(response, session, settings)
    add_flash_message(request, "Account created successfully!", "success")
    return response


@router.api_route("/sign-out", methods=["GET", "POST"])
async def sign_out(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """End the session and clear its cookies."""
    await auth_service.sign_out()
    response = RedirectResponse(request.app.state.settings.sign_in_path, status_code=303)
    clear_session_cookies(response, request.app.state.settings)
    return response
