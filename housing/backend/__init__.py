"""
Backend collaborator: rows, blob storage and auth behind one client.
"""

from housing.backend.base import AuthProvider, BackendClient, BackendFactory, RowStore, StorageBucket
from housing.backend.errors import AuthError, BackendError
from housing.backend.query import Filter, Ordering, TableQuery
from housing.config import Settings


def create_backend_factory(settings: Settings) -> BackendFactory:
    """Pick the backend implementation named by the settings."""
    if settings.uses_local_backend:
        from housing.backend.local import LocalBackendFactory
        return LocalBackendFactory(settings)

    from housing.backend.remote import RemoteBackendFactory
    return RemoteBackendFactory(settings)


__all__ = [
    "AuthError",
    "AuthProvider",
    "BackendClient",
    "BackendError",
    "BackendFactory",
    "Filter",
    "Ordering",
    "RowStore",
    "StorageBucket",
    "TableQuery",
    "create_backend_factory",
]
