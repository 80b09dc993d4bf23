"""
Session cookie helpers shared by the route guard and the sign-in pages.
"""

from typing import Optional, Tuple
from starlette.requests import Request
from starlette.responses import Response

from housing.config import Settings
from housing.schemas.auth import AuthSession


def read_session_cookies(request: Request, settings: Settings) -> Tuple[Optional[str], Optional[str]]:
    """Return the (access, refresh) tokens stored in the request cookies."""
    return (
        request.cookies.get(settings.access_cookie_name) or None,
        request.cookies.get(settings.refresh_cookie_name) or None,
    )


def set_session_cookies(response: Response, session: AuthSession, settings: Settings) -> None:
    """Store both tokens of a session as HTTP-only cookies."""
    common = {
        "httponly": True,
        "samesite": "lax",
        "secure": settings.is_production,
        "path": "/",
    }
    response.set_cookie(
        settings.access_cookie_name,
        session.access_token,
        max_age=session.expires_in,
        **common
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        session.refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 24 * 3600,
        **common
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
