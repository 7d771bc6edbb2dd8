"""Unit of work spanning the submission and feed repositories.

Every read and write of one submission or moderation call goes through the
repositories of a single ``TransactionScope``, all bound to the same
transactional connection::

    async with uow.transaction() as tx:
        existing = await tx.submissions.get_submission("123")
        await tx.feeds.save_submission_to_feed("123", "ethereum")

The scope commits when the block exits normally and rolls back when it raises.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from curation.feeds.repository import FeedRepository
from curation.storage.database import Database
from curation.submissions.repository import SubmissionRepository


@dataclass(frozen=True)
class TransactionScope:
    """Repositories bound to one open transaction."""

    submissions: SubmissionRepository
    feeds: FeedRepository


class UnitOfWork:
    """Opens transactions on a connected Database."""

    def __init__(self, database: Database) -> None:
        self._db = database

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionScope]:
        async with self._db.transaction() as conn:
            yield TransactionScope(
                submissions=SubmissionRepository(conn),
                feeds=FeedRepository(conn),
            )
