"""Tests for UnitOfWork."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from curation.storage.unit_of_work import TransactionScope, UnitOfWork


def _database_with(conn: AsyncMock) -> MagicMock:
    db = MagicMock()
    db.exits = []

    @asynccontextmanager
    async def transaction():
        try:
            yield conn
        except BaseException as e:
            db.exits.append(type(e))
            raise
        else:
            db.exits.append(None)

    db.transaction = transaction
    return db


@pytest.fixture
def conn() -> AsyncMock:
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


class TestTransaction:

    @pytest.mark.asyncio
    async def test_repositories_share_the_connection(self, conn: AsyncMock) -> None:
        uow = UnitOfWork(_database_with(conn))

        async with uow.transaction() as tx:
            assert isinstance(tx, TransactionScope)
            await tx.submissions.get_submission("T1")
            await tx.feeds.save_submission_to_feed("T1", "F1")

        assert conn.fetchrow.await_count == 1
        assert conn.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_commits_on_success(self, conn: AsyncMock) -> None:
        db = _database_with(conn)

        async with UnitOfWork(db).transaction():
            pass

        assert db.exits == [None]

    @pytest.mark.asyncio
    async def test_exception_propagates_and_rolls_back(self, conn: AsyncMock) -> None:
        db = _database_with(conn)

        with pytest.raises(OSError):
            async with UnitOfWork(db).transaction() as tx:
                await tx.submissions.get_submission("T1")
                raise OSError("connection reset")

        assert db.exits == [OSError]

    @pytest.mark.asyncio
    async def test_scope_per_transaction(self, conn: AsyncMock) -> None:
        uow = UnitOfWork(_database_with(conn))

        async with uow.transaction() as first:
            pass
        async with uow.transaction() as second:
            pass

        assert first is not second
