"""
Hosted backend client over HTTP.

Speaks the REST surface of a hosted backend-as-a-service: row access under
/rest/v1, blob storage under /storage/v1 and auth under /auth/v1. One
httpx.AsyncClient is shared for the application lifetime; each request gets a
BackendClient carrying its own bearer token.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote
import logging

import httpx

from housing.backend.base import AuthProvider, BackendClient, BackendFactory, RowStore, StorageBucket
from housing.backend.errors import AuthError, BackendError
from housing.backend.query import TableQuery
from housing.config import Settings
from housing.schemas.auth import AuthSession, AuthUser

logger = logging.getLogger(__name__)


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _encode_list(values: Sequence[Any]) -> str:
    encoded = []
    for value in values:
        text = _encode_value(value)
        if any(char in text for char in ',()"'):
            text = '"' + text.replace('"', '\\"') + '"'
        encoded.append(text)
    return "(" + ",".join(encoded) + ")"


def build_query_params(query: TableQuery, include_select: bool = True) -> List[Tuple[str, str]]:
    """Translate a TableQuery into REST query parameters."""
    params: List[Tuple[str, str]] = []
    if include_select:
        params.append(("select", query.columns))
    for item in query.filters:
        if item.operator == "in":
            params.append((item.column, f"in.{_encode_list(item.value)}"))
        else:
            params.append((item.column, f"{item.operator}.{_encode_value(item.value)}"))
    if query.orderings:
        params.append((
            "order",
            ",".join(f"{o.column}.{'desc' if o.descending else 'asc'}" for o in query.orderings)
        ))
    if query.row_limit is not None:
        params.append(("limit", str(query.row_limit)))
    return params


def _raise_for_response(response: httpx.Response, auth: bool = False) -> None:
    if not response.is_error:
        return
    message = response.reason_phrase or "Backend request failed"
    code = None
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = (
            payload.get("message")
            or payload.get("msg")
            or payload.get("error_description")
            or payload.get("error")
            or message
        )
        code = payload.get("code") or payload.get("error_code")
        if code is not None:
            code = str(code)
    if auth or response.status_code == 401:
        raise AuthError(message, status_code=response.status_code, code=code)
    raise BackendError(message, status_code=response.status_code, code=code)


class RemoteRowStore(RowStore):
    """Row access through the REST endpoint."""

    def __init__(self, http: httpx.AsyncClient, headers: Dict[str, str]):
        self.http = http
        self.headers = headers

    async def select(self, query: TableQuery) -> List[Dict[str, Any]]:
        response = await self._send("GET", query.table, params=build_query_params(query))
        return response.json()

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = await self._send(
            "POST",
            table,
            json=rows,
            headers={"Prefer": "return=representation"}
        )
        return response.json()

    async def delete(self, query: TableQuery) -> List[Dict[str, Any]]:
        response = await self._send(
            "DELETE",
            query.table,
            params=build_query_params(query, include_select=False),
            headers={"Prefer": "return=representation"}
        )
        return response.json() if response.content else []

    async def _send(self, method: str, table: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(
                method,
                f"/rest/v1/{table}",
                headers={**self.headers, **(headers or {})},
                **kwargs
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Backend unreachable: {e}", status_code=503) from e
        _raise_for_response(response)
        return response


class RemoteStorageBucket(StorageBucket):
    """Blob storage through the storage endpoint."""

    def __init__(self, http: httpx.AsyncClient, headers: Dict[str, str], bucket: str, public_base_url: str):
        super().__init__(bucket)
        self.http = http
        self.headers = headers
        self.public_base_url = public_base_url

    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        headers = {
            **self.headers,
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
        }
        try:
            response = await self.http.post(
                f"/storage/v1/object/{self.bucket}/{quote(path)}",
                content=data,
                headers=headers
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Storage unreachable: {e}", status_code=503) from e
        _raise_for_response(response)
        return path

    async def remove(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        try:
            response = await self.http.request(
                "DELETE",
                f"/storage/v1/object/{self.bucket}",
                json={"prefixes": list(paths)},
                headers=self.headers
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Storage unreachable: {e}", status_code=503) from e
        _raise_for_response(response)

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"


class RemoteAuthProvider(AuthProvider):
    """Session handling through the auth endpoint."""

    def __init__(self, http: httpx.AsyncClient, api_key: str):
        self.http = http
        self.api_key = api_key

    async def get_user(self, access_token: str) -> AuthUser:
        response = await self._send(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"}
        )
        return AuthUser.model_validate(response.json())

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token}
        )
        return AuthSession.model_validate(response.json())

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password}
        )
        return AuthSession.model_validate(response.json())

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata or {}}
        )
        payload = response.json()
        if "access_token" not in payload:
            # Email confirmation pending: the backend returns the bare user
            raise AuthError("Check your email to confirm your account before signing in", status_code=400)
        return AuthSession.model_validate(payload)

    async def sign_out(self, access_token: str) -> None:
        await self._send(
            "POST",
            "/auth/v1/logout",
            headers={"Authorization": f"Bearer {access_token}"}
        )

    async def _send(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(
                method,
                url,
                headers={"apikey": self.api_key, **(headers or {})},
                **kwargs
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Auth service unreachable: {e}", status_code=503) from e
        _raise_for_response(response, auth=response.status_code in (400, 401, 403))
        return response


class RemoteBackendFactory(BackendFactory):
    """Builds request-scoped clients over one shared HTTP connection pool."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport
        self.http: Optional[httpx.AsyncClient] = None

    async def startup(self) -> None:
        if self.http is None:
            self.http = httpx.AsyncClient(
                base_url=self.settings.backend_url,
                transport=self.transport
            )
            logger.info(f"Remote backend client opened for {self.settings.backend_url}")

    async def shutdown(self) -> None:
        if self.http is not None:
            await self.http.aclose()
            self.http = None
            logger.info("Remote backend client closed")

    def for_token(self, access_token: Optional[str] = None) -> BackendClient:
        if self.http is None:
            raise RuntimeError("Backend factory has not been started")

        api_key = self.settings.backend_anon_key
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        bucket = self.settings.storage_bucket
        return BackendClient(
            rows=RemoteRowStore(self.http, headers),
            storage_buckets={
                bucket: RemoteStorageBucket(self.http, headers, bucket, self.settings.backend_url)
            },
            auth=RemoteAuthProvider(self.http, api_key),
            access_token=access_token,
            binder=self.for_token
        )

    async def health(self) -> bool:
        if self.http is None:
            return False
        try:
            response = await self.http.get(
                "/auth/v1/health",
                headers={"apikey": self.settings.backend_anon_key}
            )
            return not response.is_error
        except httpx.HTTPError as e:
            logger.error(f"Backend health check failed: {e}")
            return False
