"""
structlog setup for the curation pipeline.

Service modules log key/value events through ``structlog.get_logger``;
repositories use plain ``logging`` loggers. Both end up in the same stdout
stream, rendered as JSON lines in production and as colored console output
elsewhere. Fields bound with ``bind_context`` (the feed being processed)
are merged into every event of the current task.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from curation.config.settings import get_settings

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("asyncio", "asyncpg")


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger from ``Settings``.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Submission handled", external_id="123", feed_id="ethereum")
    """
    settings = get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Attach fields (e.g. ``feed_id``) to every later event in this task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
