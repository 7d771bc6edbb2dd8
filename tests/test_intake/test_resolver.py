"""Tests for the batch resolver."""

from unittest.mock import MagicMock

import pytest

from curation.intake.classifier import IntentClassifier
from curation.intake.resolver import BatchResolver
from curation.intake.schemas import ResolvedModeration, ResolvedSubmission


@pytest.fixture
def classifier() -> IntentClassifier:
    return IntentClassifier(bot_id="curatedotfun")


@pytest.fixture
def resolver(metrics: MagicMock) -> BatchResolver:
    return BatchResolver(metrics=metrics)


@pytest.fixture
def classify(classifier, feed_f1):
    def _classify(*items):
        return [classifier.classify(item, feed_f1) for item in items]

    return _classify


class TestStitching:
    """Pending submit commands joined to their target content."""

    def test_target_in_batch(self, resolver, classify, make_item) -> None:
        intents = classify(
            make_item("T1", "A long thread about rollups", username="writer", user_id="w-1"),
            make_item("C1", "!submit @curatedotfun must read", username="alice", in_reply_to="T1"),
        )

        actions = resolver.resolve(intents)

        assert len(actions) == 1
        action = actions[0]
        assert isinstance(action, ResolvedSubmission)
        assert action.origin == "stitched"
        sub = action.submission
        # Content side from the target
        assert sub.external_id == "T1"
        assert sub.content == "A long thread about rollups"
        assert sub.author_username == "writer"
        assert sub.author_platform_id == "w-1"
        # Curator side from the command
        assert sub.curator_username == "alice"
        assert sub.curator_platform_id == "id-alice"
        assert sub.curator_action_external_id == "C1"
        assert sub.curator_notes == "must read"
        assert action.feed_id == "F1"
        assert action.platform_key == "twitter"

    def test_target_after_command(self, resolver, classify, make_item) -> None:
        intents = classify(
            make_item("C1", "!submit", username="alice", in_reply_to="T1"),
            make_item("T1", "content", username="writer"),
        )

        actions = resolver.resolve(intents)

        assert [a.submission.external_id for a in actions] == ["T1"]
        assert actions[0].origin == "stitched"

    def test_orphaned_command_is_dropped(
        self, resolver, classify, make_item, metrics: MagicMock
    ) -> None:
        intents = classify(make_item("C1", "!submit", username="alice", in_reply_to="T404"))

        resolution = resolver.resolve_batch(intents)

        assert resolution.actions == []
        assert [o.target_external_id for o in resolution.orphaned] == ["T404"]
        metrics.record_orphaned_command.assert_called_once_with(1)

    def test_command_cannot_target_a_moderation_item(self, resolver, classify, make_item) -> None:
        intents = classify(
            make_item("M1", "!approve looks good", username="bob", in_reply_to="T0"),
            make_item("C1", "!submit", username="alice", in_reply_to="M1"),
        )

        resolution = resolver.resolve_batch(intents)

        assert [type(a) for a in resolution.actions] == [ResolvedModeration]
        assert [o.target_external_id for o in resolution.orphaned] == ["M1"]

    def test_two_curators_same_target(self, resolver, classify, make_item) -> None:
        intents = classify(
            make_item("T1", "content", username="writer"),
            make_item("C1", "!submit", username="alice", in_reply_to="T1"),
            make_item("C2", "!submit", username="bob", in_reply_to="T1"),
        )

        actions = resolver.resolve(intents)

        assert [a.submission.curator_username for a in actions] == ["alice", "bob"]


class TestPassThrough:

    def test_order_is_preserved(self, resolver, classify, make_item) -> None:
        intents = classify(
            make_item("T1", "plain content", username="writer"),
            make_item("M1", "!approve", username="bob", in_reply_to="C0"),
            make_item("T2", "!submit direct", username="alice"),
        )

        actions = resolver.resolve(intents)

        assert isinstance(actions[0], ResolvedSubmission)
        assert actions[0].origin == "content"
        assert isinstance(actions[1], ResolvedModeration)
        assert actions[1].command.target_external_id == "C0"
        assert actions[2].origin == "direct"

    def test_unknown_is_dropped(self, resolver, classify, make_item, metrics: MagicMock) -> None:
        intents = classify(make_item("M1", "!reject", username="bob"))

        resolution = resolver.resolve_batch(intents)

        assert resolution.actions == []
        assert len(resolution.dropped) == 1
        metrics.record_orphaned_command.assert_not_called()

    def test_empty_batch(self, resolver) -> None:
        assert resolver.resolve([]) == []
