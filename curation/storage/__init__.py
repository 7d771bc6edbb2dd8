"""Storage layer for submission, feed and moderation persistence."""

from curation.storage.database import DATABASE_ERRORS, Database
from curation.storage.unit_of_work import TransactionScope, UnitOfWork

__all__ = [
    "DATABASE_ERRORS",
    "Database",
    "TransactionScope",
    "UnitOfWork",
]
