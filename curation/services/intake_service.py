"""
Intake service - runs one inbound cycle for a feed.

Fetches items from the feed's source plugins, classifies them, stitches
pending submit commands and hands the resulting actions to the submission
service in source order.

Features:
- Per-plugin error isolation
- Per-action error isolation (one failed transaction does not stop the batch)
- Batch report and metrics
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from curation.errors import SubmissionServiceError
from curation.feeds.schemas import FeedConfig
from curation.intake.classifier import IntentClassifier
from curation.intake.resolver import BatchResolver
from curation.intake.schemas import ResolvedModeration, ResolvedSubmission, SourceItem
from curation.observability.logging import bind_context, clear_context
from curation.observability.metrics import MetricsCollector, get_metrics
from curation.submissions.service import SubmissionService

logger = structlog.get_logger(__name__)


class SourcePlugin(Protocol):
    """Fetches raw items for a feed from one platform."""

    name: str

    async def fetch(self, feed_config: FeedConfig) -> list[SourceItem]:
        ...


@dataclass
class IntakeReport:
    """Summary of one processed batch."""

    feed_id: str
    items: int = 0
    intents: Counter = field(default_factory=Counter)
    submissions: Counter = field(default_factory=Counter)
    moderations: Counter = field(default_factory=Counter)
    orphaned_commands: int = 0
    dropped_unknown: int = 0
    errors: list[str] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def submissions_handled(self) -> int:
        return sum(self.submissions.values())

    @property
    def moderations_handled(self) -> int:
        return sum(self.moderations.values())

    def to_dict(self) -> dict:
        return {
            "feed_id": self.feed_id,
            "items": self.items,
            "intents": dict(self.intents),
            "submissions": dict(self.submissions),
            "moderations": dict(self.moderations),
            "orphaned_commands": self.orphaned_commands,
            "dropped_unknown": self.dropped_unknown,
            "errors": list(self.errors),
            "failed_sources": list(self.failed_sources),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


class IntakeService:
    """
    Classify -> resolve -> dispatch pipeline for inbound items.

    Usage:
        service = IntakeService(IntentClassifier(), BatchResolver(), submission_service)
        report = await service.run_once(feed_config, [twitter_source])
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        resolver: BatchResolver,
        submission_service: SubmissionService,
        metrics: MetricsCollector | None = None,
    ):
        self._classifier = classifier
        self._resolver = resolver
        self._submissions = submission_service
        self._metrics = metrics or get_metrics()

    async def run_once(
        self,
        feed_config: FeedConfig,
        sources: list[SourcePlugin],
    ) -> IntakeReport:
        """
        Fetch from every source and process the combined batch.

        Items keep each plugin's return order; plugins are read one after
        another in the order given. A failing plugin is logged and skipped.
        """
        items: list[SourceItem] = []
        failed: list[str] = []

        for source in sources:
            name = getattr(source, "name", type(source).__name__)
            try:
                fetched = await source.fetch(feed_config)
            except Exception as e:
                logger.error(
                    "Source fetch failed",
                    source=name,
                    feed_id=feed_config.id,
                    error=str(e),
                )
                failed.append(name)
                continue
            logger.debug("Fetched items", source=name, count=len(fetched))
            items.extend(fetched)

        report = await self.process_batch(items, feed_config)
        report.failed_sources.extend(failed)
        return report

    async def process_batch(
        self,
        items: list[SourceItem],
        feed_config: FeedConfig,
    ) -> IntakeReport:
        """
        Process one batch of items fetched for ``feed_config``.

        Args:
            items: Items in source order
            feed_config: Feed the items were fetched for

        Returns:
            IntakeReport for the batch
        """
        start_time = time.monotonic()
        report = IntakeReport(feed_id=feed_config.id, items=len(items))
        bind_context(feed_id=feed_config.id)
        try:
            await self._run_batch(items, feed_config, report)
        finally:
            clear_context()

        report.elapsed_seconds = time.monotonic() - start_time
        self._metrics.record_batch_latency(report.elapsed_seconds)

        logger.info(
            "Intake batch processed",
            feed_id=feed_config.id,
            items=report.items,
            submissions=report.submissions_handled,
            moderations=report.moderations_handled,
            orphaned=report.orphaned_commands,
            errors=len(report.errors),
        )
        return report

    async def _run_batch(
        self,
        items: list[SourceItem],
        feed_config: FeedConfig,
        report: IntakeReport,
    ) -> None:
        intents = []
        for item in items:
            intent = self._classifier.classify(item, feed_config)
            report.intents[intent.intent_type] += 1
            self._metrics.record_intent(intent.intent_type)
            intents.append(intent)

        resolution = self._resolver.resolve_batch(intents)
        report.orphaned_commands = len(resolution.orphaned)
        report.dropped_unknown = len(resolution.dropped)

        for action in resolution.actions:
            try:
                if isinstance(action, ResolvedSubmission):
                    outcome = await self._submissions.handle_submission(
                        action.submission, action.feed_id, action.platform_key
                    )
                    report.submissions[outcome.value] += 1
                elif isinstance(action, ResolvedModeration):
                    outcome = await self._submissions.handle_moderation(
                        action.command, action.feed_id, action.platform_key
                    )
                    report.moderations[outcome.value] += 1
            except SubmissionServiceError as e:
                logger.error(
                    "Action failed, continuing with batch",
                    operation=e.operation,
                    external_id=e.external_id,
                    feed_id=e.feed_id,
                    error=str(e.cause),
                )
                report.errors.append(str(e))

