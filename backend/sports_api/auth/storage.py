"""
Key storage collaborator.

The authorization path only needs two operations from persistence:
  • find_by_key_hash   — resolve a digest to a record (read)
  • update_last_used   — stamp last_used_at (write, off the request path)

KeyStorage is the protocol; SqlAlchemyKeyStorage is the production
implementation over the shared async session factory. Any SQLAlchemy
failure, pool checkout timeouts included, surfaces as StorageUnavailable
so the gate can deny with a retryable reason instead of a 500.
"""

from __future__ import annotations

import datetime
import logging
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sports_api.auth.errors import StorageUnavailable
from sports_api.auth.records import ApiKeyRecord, scope_from_stored
from sports_api.models.api_key import ApiKey

logger = logging.getLogger(__name__)


class KeyStorage(Protocol):
    """Persistence operations the access layer depends on."""

    async def find_by_key_hash(self, key_hash: str) -> ApiKeyRecord | None: ...

    async def update_last_used(self, key_id: int, timestamp: datetime.datetime) -> None: ...


def record_from_row(row: ApiKey) -> ApiKeyRecord:
    """Convert an ORM row to an immutable record. Raises ValueError on bad data."""
    return ApiKeyRecord(
        id=row.id,
        key_hash=row.key_hash,
        key_prefix=row.key_prefix,
        name=row.name,
        allowed_sports=scope_from_stored(row.sports if row.sports is not None else []),
        rate_limit_per_minute=row.rate_limit,
        is_active=row.is_active,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
        expires_at=row.expires_at,
    )


class SqlAlchemyKeyStorage:
    """KeyStorage backed by the `api_keys` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_key_hash(self, key_hash: str) -> ApiKeyRecord | None:
        stmt = select(ApiKey).where(ApiKey.key_hash == key_hash)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("api key lookup failed") from exc

        if row is None:
            return None

        try:
            return record_from_row(row)
        except ValueError:
            # A row that breaks the record invariants is unusable, not a 500
            logger.error("API key %s (%s) has invalid stored data", row.id, row.key_prefix)
            return None

    async def update_last_used(self, key_id: int, timestamp: datetime.datetime) -> None:
        stmt = (
            update(ApiKey)
            .where(ApiKey.id == key_id)
            .values(last_used_at=timestamp)
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable(f"last_used_at update failed for key {key_id}") from exc
