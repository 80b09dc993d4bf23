"""
Self-hosted backend for development and tests.

Implements the backend collaborator surface on top of async SQLAlchemy for
rows, a directory tree written with aiofiles for blobs, and JWT sessions for
auth. Row-level policies of a hosted backend are not reproduced here.
"""

from datetime import timedelta
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Sequence
from decimal import Decimal, InvalidOperation
from urllib.parse import quote
import logging
import uuid

import aiofiles
import aiofiles.os
from jose import JWTError
from sqlalchemy import Table, delete, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from housing.backend.base import AuthProvider, BackendClient, BackendFactory, RowStore, StorageBucket
from housing.backend.errors import AuthError, BackendError
from housing.backend.query import TableQuery
from housing.config import Settings
from housing.database import (
    Base,
    check_database_connection,
    create_engine,
    create_session_factory,
    create_tables,
)
from housing.models import DEFAULT_AMENITIES, Amenity, AuthUser as AuthUserRow
from housing.schemas.auth import AuthSession, AuthUser
from housing.utils.auth import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "t", "1", "yes"}


def _coerce(column, value: Any) -> Any:
    """Convert REST-style string values to the column's Python type."""
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if isinstance(value, python_type):
        return value
    try:
        if python_type is uuid.UUID:
            return uuid.UUID(str(value))
        if python_type is bool:
            return str(value).lower() in _TRUE_STRINGS
        if python_type is Decimal:
            return Decimal(str(value))
        if python_type in (int, float):
            return python_type(value)
    except (ValueError, TypeError, InvalidOperation):
        raise BackendError(
            f'invalid input syntax for type {python_type.__name__}: "{value}"',
            status_code=400,
            code="22P02"
        )
    return value


class LocalRowStore(RowStore):
    """Runs table queries as SQL statements."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _table(self, name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise BackendError(f'relation "{name}" does not exist', status_code=404, code="42P01")

    def _column(self, table: Table, name: str):
        try:
            return table.c[name]
        except KeyError:
            raise BackendError(
                f'column {table.name}.{name} does not exist',
                status_code=400,
                code="42703"
            )

    def _conditions(self, table: Table, query: TableQuery) -> list:
        conditions = []
        for item in query.filters:
            column = self._column(table, item.column)
            if item.operator == "eq":
                value = _coerce(column, item.value)
                conditions.append(column.is_(None) if value is None else column == value)
            elif item.operator == "gte":
                conditions.append(column >= _coerce(column, item.value))
            elif item.operator == "lte":
                conditions.append(column <= _coerce(column, item.value))
            elif item.operator == "in":
                conditions.append(column.in_([_coerce(column, v) for v in item.value]))
        return conditions

    async def select(self, query: TableQuery) -> List[Dict[str, Any]]:
        table = self._table(query.table)
        names = query.selected_columns
        columns = [self._column(table, name) for name in names] if names else list(table.c)

        stmt = select(*columns).where(*self._conditions(table, query))
        for ordering in query.orderings:
            column = self._column(table, ordering.column)
            stmt = stmt.order_by(column.desc() if ordering.descending else column.asc())
        if query.row_limit is not None:
            stmt = stmt.limit(query.row_limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"Select on {query.table} failed: {e}")
            raise BackendError(str(e), status_code=500)

        logger.debug(f"Selected {len(rows)} rows from {query.table}")
        return rows

    async def insert(self, table_name: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        table = self._table(table_name)
        created = []
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for row in rows:
                        values = {
                            name: _coerce(self._column(table, name), value)
                            for name, value in row.items()
                        }
                        result = await session.execute(
                            insert(table).values(**values).returning(*table.c)
                        )
                        created.append(dict(result.mappings().one()))
        except IntegrityError as e:
            logger.warning(f"Insert into {table_name} violated a constraint: {e.orig}")
            raise BackendError(str(e.orig), status_code=409, code="23505")
        except SQLAlchemyError as e:
            logger.error(f"Insert into {table_name} failed: {e}")
            raise BackendError(str(e), status_code=500)

        logger.debug(f"Inserted {len(created)} rows into {table_name}")
        return created

    async def delete(self, query: TableQuery) -> List[Dict[str, Any]]:
        table = self._table(query.table)
        stmt = delete(table).where(*self._conditions(table, query)).returning(*table.c)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    deleted = [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"Delete from {query.table} failed: {e}")
            raise BackendError(str(e), status_code=500)

        logger.debug(f"Deleted {len(deleted)} rows from {query.table}")
        return deleted


class LocalStorageBucket(StorageBucket):
    """Stores blobs under <root>/<bucket>/<path>."""

    def __init__(self, root_dir: Path, bucket: str, public_base_url: str):
        super().__init__(bucket)
        self.bucket_dir = Path(root_dir) / bucket
        self.public_base_url = public_base_url

    def resolve(self, path: str) -> Path:
        """Map a storage key to a file path, rejecting keys that escape the bucket."""
        key = PurePosixPath(path)
        if not path or key.is_absolute() or ".." in key.parts:
            raise BackendError(f"Invalid storage key: {path}", status_code=400, code="InvalidKey")
        return self.bucket_dir.joinpath(*key.parts)

    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        target = self.resolve(path)
        if target.exists() and not upsert:
            raise BackendError("The resource already exists", status_code=409, code="Duplicate")

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Failed to write blob {path}: {e}")
            raise BackendError(f"Failed to store file: {e}", status_code=500)

        logger.debug(f"Stored blob {self.bucket}/{path} ({len(data)} bytes, {content_type})")
        return path

    async def remove(self, paths: Sequence[str]) -> None:
        for path in paths:
            target = self.resolve(path)
            try:
                await aiofiles.os.remove(target)
            except FileNotFoundError:
                logger.debug(f"Blob already gone: {self.bucket}/{path}")
            except OSError as e:
                raise BackendError(f"Failed to remove file: {e}", status_code=500)

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(path)}"


class LocalAuthProvider(AuthProvider):
    """Password accounts with JWT sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self.session_factory = session_factory
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.jwt_refresh_token_expire_days)

    def _issue_session(self, user_id: uuid.UUID, email: str) -> AuthSession:
        return AuthSession(
            access_token=create_access_token(
                user_id, email, self.secret_key, self.algorithm, self.access_ttl
            ),
            refresh_token=create_refresh_token(
                user_id, email, self.secret_key, self.algorithm, self.refresh_ttl
            ),
            expires_in=int(self.access_ttl.total_seconds()),
            user=AuthUser(id=user_id, email=email)
        )

    async def _find_user(self, **criteria) -> Optional[AuthUserRow]:
        async with self.session_factory() as session:
            result = await session.execute(select(AuthUserRow).filter_by(**criteria))
            return result.scalar_one_or_none()

    async def _user_from_token(self, token: str, token_type: str) -> AuthUserRow:
        try:
            payload = verify_token(token, self.secret_key, self.algorithm, token_type)
            user_id = uuid.UUID(payload.user_id)
        except (JWTError, ValueError) as e:
            raise AuthError(f"Invalid {token_type} token: {e}")

        user = await self._find_user(id=user_id)
        if not user:
            raise AuthError("User from token no longer exists")
        return user

    async def get_user(self, access_token: str) -> AuthUser:
        user = await self._user_from_token(access_token, "access")
        return AuthUser(id=user.id, email=user.email)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        user = await self._user_from_token(refresh_token, "refresh")
        logger.debug(f"Refreshed session for {user.email}")
        return self._issue_session(user.id, user.email)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user = await self._find_user(email=email.strip().lower())
        if not user or not verify_password(password, user.hashed_password):
            raise AuthError("Invalid login credentials", status_code=400, code="invalid_credentials")
        return self._issue_session(user.id, user.email)

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        email = email.strip().lower()
        try:
            hashed = hash_password(password)
        except ValueError as e:
            raise AuthError(str(e), status_code=422, code="weak_password")

        if await self._find_user(email=email):
            raise AuthError("User already registered", status_code=422, code="user_already_exists")

        user = AuthUserRow(email=email, hashed_password=hashed)
        try:
            async with self.session_factory() as session:
                session.add(user)
                await session.commit()
        except IntegrityError:
            raise AuthError("User already registered", status_code=422, code="user_already_exists")

        logger.info(f"Registered local account {email}")
        return self._issue_session(user.id, user.email)

    async def sign_out(self, access_token: str) -> None:
        # Tokens are stateless; the caller drops its cookies.
        await self._user_from_token(access_token, "access")


class LocalBackendFactory(BackendFactory):
    """Owns the engine and storage root of the local backend."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.storage_root = Path(settings.storage_dir)

    async def startup(self) -> None:
        if self.engine is not None:
            return
        self.engine = create_engine(self.settings.database_url, echo=self.settings.debug)
        self.session_factory = create_session_factory(self.engine)
        self.storage_root.mkdir(parents=True, exist_ok=True)
        await create_tables(self.engine)
        if self.settings.seed_amenities:
            await self.seed_amenities()
        logger.info(f"Local backend ready (database: {self.engine.url.render_as_string(hide_password=True)})")

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Local backend connections closed")

    async def seed_amenities(self) -> None:
        """Insert the default amenity list into an empty amenities table."""
        async with self.session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(Amenity))
            if count:
                return
            session.add_all([Amenity(name=name) for name in DEFAULT_AMENITIES])
            await session.commit()
            logger.info(f"Seeded {len(DEFAULT_AMENITIES)} amenities")

    def for_token(self, access_token: Optional[str] = None) -> BackendClient:
        if self.session_factory is None:
            raise RuntimeError("Backend factory has not been started")

        bucket = self.settings.storage_bucket
        return BackendClient(
            rows=LocalRowStore(self.session_factory),
            storage_buckets={
                bucket: LocalStorageBucket(self.storage_root, bucket, self.settings.storage_public_path)
            },
            auth=LocalAuthProvider(self.session_factory, self.settings),
            access_token=access_token,
            binder=self.for_token
        )

    async def health(self) -> bool:
        if self.session_factory is None:
            return False
        return await check_database_connection(self.session_factory)
