"""
Intent classifier for inbound source items.

Maps one ``SourceItem`` plus the feed it was fetched for onto exactly one
``Intent``. Classification is a case-insensitive substring match on the item
text with a fixed priority:

1. submit token: a pending command when the item replies to another item,
   otherwise a direct submission of the item itself
2. approve/reject token: a moderation command (requires a reply target)
3. anything else: plain content curated by the system placeholder

The classifier is pure: no I/O and no side effects beyond debug logging.
"""

import re

import structlog

from curation.feeds.schemas import FeedConfig
from curation.intake.config import IntakeConfig
from curation.intake.schemas import (
    ContentItemIntent,
    DirectSubmissionIntent,
    Intent,
    ModerationCommandData,
    ModerationCommandIntent,
    PendingSubmissionCommandIntent,
    SourceItem,
    UnknownIntent,
)
from curation.submissions.schemas import ModerationAction, Submission

logger = structlog.get_logger(__name__)

HASHTAG_PATTERN = re.compile(r"#([a-zA-Z0-9_]+)")
_EXTRA_SPACES = re.compile(r"[ \t]{2,}")


def extract_hashtags(text: str) -> list[str]:
    """Return hashtag words in order of appearance, without the ``#``."""
    if not text:
        return []
    return HASHTAG_PATTERN.findall(text)


def extract_curator_notes(
    text: str,
    command: str,
    bot_id: str | None = None,
) -> str | None:
    """
    Extract free-text notes from a command item.

    Removes the first occurrence of the command token together with an
    immediately following ``@mention``, every mention of the bot, and all
    hashtags.

    Args:
        text: Item text
        command: Command token that classified the item (e.g. ``!submit``)
        bot_id: Bot handle, with or without ``@``

    Returns:
        The remaining text, or None when nothing is left
    """
    if not text:
        return None

    notes = re.sub(
        rf"{re.escape(command)}(\s+@\w+)?",
        " ",
        text,
        count=1,
        flags=re.IGNORECASE,
    )
    if bot_id:
        handle = re.escape(bot_id.lstrip("@"))
        notes = re.sub(rf"@{handle}\b", " ", notes, flags=re.IGNORECASE)
    notes = HASHTAG_PATTERN.sub(" ", notes)
    notes = _EXTRA_SPACES.sub(" ", notes).strip()

    return notes or None


class IntentClassifier:
    """
    Classifies source items into intents.

    Usage:
        classifier = IntentClassifier(bot_id="curatedotfun")
        intent = classifier.classify(item, feed_config)
    """

    def __init__(
        self,
        config: IntakeConfig | None = None,
        bot_id: str | None = None,
    ) -> None:
        self._config = config or IntakeConfig()
        self._bot_id = bot_id.lstrip("@") if bot_id else None

    @property
    def config(self) -> IntakeConfig:
        return self._config

    def classify(self, item: SourceItem, feed_config: FeedConfig) -> Intent:
        """
        Classify one item fetched for ``feed_config``.

        Args:
            item: Raw item from a source plugin
            feed_config: Feed the item was fetched for

        Returns:
            Exactly one intent; problems are reported as ``UnknownIntent``
        """
        feed_id = feed_config.id

        if not item.content or not item.content.strip():
            return UnknownIntent(item=item, feed_id=feed_id, error="empty content")

        text = item.content.lower()
        cfg = self._config

        if cfg.submit_command.lower() in text:
            return self._build_submission_intent(item, feed_id)

        has_approve = cfg.approve_command.lower() in text
        if has_approve or cfg.reject_command.lower() in text:
            # Approve wins when both tokens appear
            if has_approve:
                return self._build_moderation_intent(
                    item, feed_id, ModerationAction.APPROVE, cfg.approve_command
                )
            return self._build_moderation_intent(
                item, feed_id, ModerationAction.REJECT, cfg.reject_command
            )

        return self._build_content_intent(item, feed_id)

    def _is_bot(self, username: str | None) -> bool:
        return bool(
            self._bot_id
            and username
            and username.lstrip("@").lower() == self._bot_id.lower()
        )

    def _build_submission_intent(self, item: SourceItem, feed_id: str) -> Intent:
        author = item.author
        handle = author.handle if author else None
        if author is None or not author.id or not handle:
            logger.warning(
                "Submit command without a parseable author",
                external_id=item.key,
                feed_id=feed_id,
            )
            return UnknownIntent(
                item=item, feed_id=feed_id, error="submit command has no author"
            )
        if self._is_bot(handle):
            logger.info("Ignoring submit command from bot account", external_id=item.key)
            return UnknownIntent(
                item=item, feed_id=feed_id, error="submit command from bot account"
            )

        command = self._config.submit_command
        notes = extract_curator_notes(item.content, command, self._bot_id)
        hashtags = tuple(extract_hashtags(item.content))
        target = item.metadata.in_reply_to_id

        if target:
            logger.debug(
                "Classified pending submission command",
                external_id=item.key,
                target_external_id=target,
            )
            return PendingSubmissionCommandIntent(
                item=item,
                feed_id=feed_id,
                target_external_id=target,
                curator_id=author.id,
                curator_username=handle,
                curator_platform_id=author.id,
                curator_action_external_id=item.key,
                curator_notes=notes,
                submitted_at=item.created_at,
                potential_target_feed_names=hashtags,
            )

        logger.debug("Classified direct submission", external_id=item.key)
        submission = Submission(
            external_id=item.key,
            author_platform_id=author.id,
            author_username=handle,
            content=item.content,
            media=list(item.media),
            created_at=item.created_at,
            submitted_at=item.created_at,
            curator_id=author.id,
            curator_username=handle,
            curator_platform_id=author.id,
            curator_action_external_id=item.key,
            curator_notes=notes,
        )
        return DirectSubmissionIntent(
            item=item,
            feed_id=feed_id,
            submission=submission,
            potential_target_feed_names=hashtags,
        )

    def _build_moderation_intent(
        self,
        item: SourceItem,
        feed_id: str,
        action: ModerationAction,
        command: str,
    ) -> Intent:
        target = item.metadata.in_reply_to_id
        if not target:
            logger.warning(
                "Moderation command without reply target",
                external_id=item.key,
                action=action.value,
            )
            return UnknownIntent(item=item, feed_id=feed_id, error="missing target")

        handle = item.author.handle if item.author else None
        if not handle:
            return UnknownIntent(
                item=item, feed_id=feed_id, error="moderation command has no author"
            )

        data = ModerationCommandData(
            target_external_id=target,
            action=action,
            moderator_username=handle,
            moderator_platform_id=item.author.id,
            notes=extract_curator_notes(item.content, command, self._bot_id),
            command_external_id=item.key,
            command_timestamp=item.created_at,
        )
        return ModerationCommandIntent(item=item, feed_id=feed_id, command=data)

    def _build_content_intent(self, item: SourceItem, feed_id: str) -> Intent:
        author = item.author
        unknown = self._config.unknown_author
        system = self._config.system_curator

        submission = Submission(
            external_id=item.key,
            author_platform_id=(author.id if author else None) or unknown,
            author_username=(author.handle if author else None) or unknown,
            content=item.content,
            media=list(item.media),
            created_at=item.created_at,
            curator_id=system,
            curator_username=system,
            curator_action_external_id=item.id,
        )
        return ContentItemIntent(item=item, feed_id=feed_id, submission=submission)
