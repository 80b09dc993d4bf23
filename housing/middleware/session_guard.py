"""
Session guard middleware.

Resolves the signed-in user from the session cookies on every request,
refreshing an expired session when a refresh token is present, and keeps
anonymous or under-privileged users out of the protected pages.
"""

from typing import Callable, Optional, Tuple
from urllib.parse import urlencode
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging

from housing.backend import AuthError, BackendFactory
from housing.config import Settings
from housing.schemas.auth import AuthSession, AuthUser, UserRole
from housing.services.auth import AuthService
from housing.utils.exceptions import RemoteReadError
from housing.utils.cookies import clear_session_cookies, read_session_cookies, set_session_cookies

logger = logging.getLogger(__name__)


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """
    Cookie session resolution and route protection.

    Sets request.state.user and request.state.access_token for the handlers.
    Under the protected prefix a missing user or profile redirects to the
    sign-in page, and landlord-only paths redirect other roles to the
    dashboard. When the check itself fails, guard_fail_open decides between
    letting the request through and redirecting to sign-in.
    """

    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.access_token = None

        refreshed: Optional[AuthSession] = None
        clear_cookies = False
        protected = self._is_protected(request.url.path)

        try:
            factory: BackendFactory = request.app.state.backend
            user, refreshed, clear_cookies = await self._resolve_session(request, factory)
            request.state.user = user

            if protected:
                redirect = await self._authorize(request, factory, user)
                if redirect is not None:
                    return self._finish(redirect, refreshed, clear_cookies)
        except Exception as e:
            if self.settings.guard_fail_open:
                logger.warning(
                    f"Session check failed for {request.url.path}, letting request through: {e}",
                    exc_info=True
                )
            elif protected:
                logger.warning(f"Session check failed for {request.url.path}, redirecting to sign-in: {e}")
                return self._redirect_to_sign_in(request)
            else:
                logger.warning(f"Session check failed for {request.url.path}: {e}")

        response = await call_next(request)
        return self._finish(response, refreshed, clear_cookies)

    def _is_protected(self, path: str) -> bool:
        prefix = self.settings.protected_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")

    def _is_landlord_only(self, path: str) -> bool:
        return any(
            path == landlord_path or path.startswith(landlord_path.rstrip("/") + "/")
            for landlord_path in self.settings.landlord_only_paths
        )

    async def _resolve_session(
        self,
        request: Request,
        factory: BackendFactory
    ) -> Tuple[Optional[AuthUser], Optional[AuthSession], bool]:
        """
        Resolve the user behind the session cookies.

        Returns the user, the refreshed session when one was issued and
        whether stale cookies should be cleared.
        """
        access_token, refresh_token = read_session_cookies(request, self.settings)
        if not access_token and not refresh_token:
            return None, None, False

        client = factory.for_token(access_token)
        if access_token:
            user = await client.current_user()
            if user is not None:
                request.state.access_token = access_token
                return user, None, False

        if not refresh_token:
            return None, None, True

        try:
            session = await client.auth.refresh_session(refresh_token)
        except AuthError as e:
            logger.info(f"Session refresh rejected: {e}")
            return None, None, True

        request.state.access_token = session.access_token
        logger.debug(f"Refreshed session for {session.user.email}")
        return session.user, session, False

    async def _authorize(
        self,
        request: Request,
        factory: BackendFactory,
        user: Optional[AuthUser]
    ) -> Optional[Response]:
        path = request.url.path
        if user is None:
            return self._redirect_to_sign_in(request)

        service = AuthService(factory.for_token(request.state.access_token))
        try:
            profile = await service.get_profile(user.id)
        except RemoteReadError as e:
            logger.warning(f"Profile lookup for {user.id} failed, redirecting to sign-in: {e}")
            return self._redirect_to_sign_in(request)
        if profile is None:
            logger.warning(f"User {user.id} has no profile, redirecting to sign-in")
            return self._redirect_to_sign_in(request)
        request.state.profile = profile

        if self._is_landlord_only(path) and profile.role != UserRole.LANDLORD:
            logger.info(f"Non-landlord {user.id} redirected away from {path}")
            return RedirectResponse(self.settings.dashboard_path, status_code=303)

        return None

    def _redirect_to_sign_in(self, request: Request) -> RedirectResponse:
        target = request.url.path
        if request.url.query:
            target += "?" + request.url.query
        url = f"{self.settings.sign_in_path}?{urlencode({'next': target})}"
        return RedirectResponse(url, status_code=303)

    def _finish(
        self,
        response: Response,
        refreshed: Optional[AuthSession],
        clear_cookies: bool
    ) -> Response:
        # Handlers that sign in or out own the cookies of their response
        cookie_prefixes = (f"{self.settings.access_cookie_name}=", f"{self.settings.refresh_cookie_name}=")
        if any(header.startswith(cookie_prefixes) for header in response.headers.getlist("set-cookie")):
            return response

        if refreshed is not None:
            set_session_cookies(response, refreshed, self.settings)
        elif clear_cookies:
            clear_session_cookies(response, self.settings)
        return response
