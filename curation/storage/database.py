"""
asyncpg pool shared by the submission and feed repositories.

Repositories accept either this ``Database`` (one pooled connection per
statement) or the raw connection handed out by ``transaction()``; both expose
``execute``/``fetch``/``fetchrow``/``fetchval``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from curation.config.settings import get_settings
from curation.errors import DATABASE_ERRORS

logger = logging.getLogger(__name__)

# Tables the intake pipeline cannot run without
_REQUIRED_TABLES = ("feeds", "submissions", "submission_feeds", "moderation_history")


class Database:
    """
    Pooled PostgreSQL access for the curation store.

    Usage:
        db = Database()
        await db.connect()
        try:
            async with db.transaction() as conn:
                await SubmissionRepository(conn).save_submission(submission)
        finally:
            await db.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = settings.db_command_timeout

        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Open the pool. Failures are logged and re-raised."""
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        except DATABASE_ERRORS as e:
            logger.error("Cannot reach curation database: %s", e)
            raise
        logger.info("Curation database pool ready (%d-%d)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Curation database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Yield a connection inside a transaction.

        Everything issued on ``conn`` commits together when the block exits
        normally and is rolled back when it raises. Used by ``UnitOfWork`` so a
        submission, its feed link, its moderation entry and the curator's
        quota counter change atomically.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the status tag (e.g. ``INSERT 0 1``)."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """
        True when the database answers and the curation tables exist.

        A reachable database without the schema (``init-db`` not run yet)
        counts as unhealthy.
        """
        try:
            missing = await self.fetchval(
                "SELECT count(*) FROM unnest($1::text[]) AS t(name) "
                "WHERE to_regclass(t.name) IS NULL",
                list(_REQUIRED_TABLES),
            )
        except DATABASE_ERRORS as e:
            logger.warning("Curation database health check failed: %s", e)
            return False
        if missing:
            logger.warning("Curation schema incomplete: %d table(s) missing", missing)
        return missing == 0
