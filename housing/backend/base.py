"""
Backend collaborator interfaces.

The application never talks to a database or blob store directly. Every page
and service receives a BackendClient bound to the caller's access token and
works through its row store, storage buckets and auth provider.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from housing.backend.errors import AuthError
from housing.backend.query import TableQuery
from housing.schemas.auth import AuthSession, AuthUser

logger = logging.getLogger(__name__)


class RowStore(ABC):
    """Executes table queries."""

    @abstractmethod
    async def select(self, query: TableQuery) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, query: TableQuery) -> List[Dict[str, Any]]:
        ...


class StorageBucket(ABC):
    """Blob storage scoped to one bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        """Store a blob and return its storage path."""

    @abstractmethod
    async def remove(self, paths: Sequence[str]) -> None:
        ...

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        ...


class AuthProvider(ABC):
    """Session and credential operations."""

    @abstractmethod
    async def get_user(self, access_token: str) -> AuthUser:
        """Return the user owning the token. Raises AuthError when invalid."""

    @abstractmethod
    async def refresh_session(self, refresh_token: str) -> AuthSession:
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        ...

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        ...


class BackendClient:
    """
    Request-scoped backend client.

    Holds the caller's access token so row-level policies on the backend apply
    to every query it issues.
    """

    def __init__(
        self,
        rows: RowStore,
        storage_buckets: Dict[str, StorageBucket],
        auth: AuthProvider,
        access_token: Optional[str] = None,
        binder: Optional[Callable[[Optional[str]], "BackendClient"]] = None
    ):
        self.rows = rows
        self.storage_buckets = storage_buckets
        self.auth = auth
        self.access_token = access_token
        self.binder = binder

    def with_token(self, access_token: Optional[str]) -> "BackendClient":
        """Client sharing the same connections but acting for another token."""
        if self.binder is None:
            raise RuntimeError("This client cannot be rebound to another token")
        return self.binder(access_token)

    def table(self, name: str) -> TableQuery:
        return TableQuery(name, self.rows)

    def storage(self, bucket: str) -> StorageBucket:
        try:
            return self.storage_buckets[bucket]
        except KeyError:
            raise KeyError(f"Unknown storage bucket: {bucket}")

    async def current_user(self) -> Optional[AuthUser]:
        """Resolve the user for the bound token, None when signed out."""
        if not self.access_token:
            return None
        try:
            return await self.auth.get_user(self.access_token)
        except AuthError as e:
            logger.debug(f"Access token rejected: {e}")
            return None


class BackendFactory(ABC):
    """Application-lifetime owner of backend connections."""

    @abstractmethod
    def for_token(self, access_token: Optional[str] = None) -> BackendClient:
        """Build a client bound to one caller."""

    async def startup(self) -> None:
        """Open connections and prepare the backend."""

    async def shutdown(self) -> None:
        """Release connections."""

    @abstractmethod
    async def health(self) -> bool:
        ...
