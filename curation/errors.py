"""Exception types raised by the curation services.

Only unexpected failures (database errors, broken configuration) are raised.
Expected outcomes such as an exhausted quota or an unauthorized moderator are
reported through return values and logs instead.
"""

import asyncpg

# Failures of the store itself, as opposed to expected business outcomes.
DATABASE_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
)


class CurationError(Exception):
    """Base class for curation errors."""


class FeedConfigError(CurationError):
    """Raised when feed definitions cannot be loaded or validated."""


class RecordDecodeError(CurationError):
    """Raised when a stored row cannot be mapped back to its model.

    Attributes:
        table: Table the row came from.
        key: Primary key of the row, when known.
    """

    def __init__(self, table: str, key: str | None, cause: BaseException) -> None:
        self.table = table
        self.key = key
        super().__init__(f"Corrupt {table} row {key!r}: {cause}")


class SubmissionServiceError(CurationError):
    """Raised when a submission or moderation transaction fails.

    Attributes:
        operation: Service operation that failed.
        external_id: External id of the content (or command target).
        feed_id: Feed the operation was routed to.
        cause: Original exception (also chained as ``__cause__``).
    """

    def __init__(
        self,
        operation: str,
        external_id: str | None,
        feed_id: str | None,
        cause: BaseException,
    ) -> None:
        self.operation = operation
        self.external_id = external_id
        self.feed_id = feed_id
        self.cause = cause
        super().__init__(
            f"{operation} failed for {external_id!r} in feed {feed_id!r}: "
            f"{type(cause).__name__}: {cause}"
        )


# Everything a repository call may raise; wrapped at the service boundary.
REPOSITORY_ERRORS: tuple[type[BaseException], ...] = DATABASE_ERRORS + (RecordDecodeError,)
