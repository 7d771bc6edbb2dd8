"""Tests for SourceItem parsing and the JSON file source."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from curation.intake.schemas import SourceItem
from curation.intake.sources import JsonFileSource


class TestSourceItem:

    def test_parses_plugin_shape(self) -> None:
        item = SourceItem.model_validate(
            {
                "id": "abc",
                "externalId": "1890",
                "content": "hello",
                "author": {"id": "42", "username": "alice", "displayName": "Alice"},
                "createdAt": "2025-03-01T12:00:00Z",
                "metadata": {"sourcePlugin": "twitter", "inReplyToId": "1889", "searchId": "s1"},
            }
        )

        assert item.key == "1890"
        assert item.platform_key == "twitter"
        assert item.metadata.in_reply_to_id == "1889"
        assert item.author.handle == "alice"

    def test_display_name_is_handle_fallback(self) -> None:
        item = SourceItem(
            id="abc",
            content="x",
            author={"id": "42", "display_name": "Alice"},
            metadata={"source_plugin": "twitter"},
        )

        assert item.author.handle == "Alice"
        assert item.key == "abc"

    def test_metadata_requires_plugin(self) -> None:
        with pytest.raises(ValidationError):
            SourceItem.model_validate({"id": "abc", "content": "x", "metadata": {}})


class TestJsonFileSource:

    @pytest.mark.asyncio
    async def test_fills_missing_platform(self, tmp_path: Path, feed_f1) -> None:
        path = tmp_path / "items.json"
        path.write_text(
            json.dumps(
                [
                    {"id": "1", "content": "a", "metadata": {}},
                    {"id": "2", "content": "b", "metadata": {"sourcePlugin": "reddit"}},
                ]
            )
        )

        items = await JsonFileSource(path, platform="twitter").fetch(feed_f1)

        assert [i.platform_key for i in items] == ["twitter", "reddit"]

    @pytest.mark.asyncio
    async def test_rejects_non_list(self, tmp_path: Path, feed_f1) -> None:
        path = tmp_path / "items.json"
        path.write_text(json.dumps({"items": []}))

        with pytest.raises(ValueError):
            await JsonFileSource(path).fetch(feed_f1)
