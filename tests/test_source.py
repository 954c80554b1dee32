"""Tests for raw notification items and static sources."""

import json

import pytest

from notifsync.errors import ParseError, SourceError
from notifsync.source import RawNotification, StaticPageSource


class TestRawNotification:
    """Test building feed items from plain mappings."""

    def test_from_dict(self):
        item = RawNotification.from_dict(
            {
                "id": 123,
                "time": "1700000000",
                "user_nickname": "Alice",
                "parent_comment_id": "p1",
                "unrelated": "ignored",
            }
        )
        assert item.id == "123"
        assert item.time == 1700000000
        assert item.user_nickname == "Alice"
        assert item.is_reply is True

    @pytest.mark.parametrize(
        "data",
        [{"time": 1}, {"id": "1"}, {"id": "1", "time": "x"}, {"id": " ", "time": 1}],
    )
    def test_from_dict_malformed(self, data):
        with pytest.raises(ParseError):
            RawNotification.from_dict(data)

    def test_to_record(self):
        item = RawNotification(id="9", time=100, comment_content="hi", note_title="T")
        record = item.to_record()
        assert record.id == "9"
        assert record.notif_time_unix == 100
        assert record.comment_content == "hi"
        assert record.note_title == "T"


class TestStaticPageSource:
    """Test paging over fixed pages."""

    async def test_pages_in_order(self):
        a = RawNotification(id="1", time=3)
        b = RawNotification(id="2", time=2)
        source = StaticPageSource([[a], [b]])

        first = await source.fetch_page(None)
        assert first.items == [a]
        assert first.has_more is True
        second = await source.fetch_page(first.next_cursor)
        assert second.items == [b]
        assert second.has_more is False
        assert second.next_cursor is None

    async def test_bad_cursor(self):
        source = StaticPageSource([[RawNotification(id="1", time=1)]])
        with pytest.raises(SourceError):
            await source.fetch_page("5")

    async def test_from_json(self, tmp_path):
        path = tmp_path / "pages.json"
        path.write_text(
            json.dumps(
                [
                    {"items": [{"id": "1", "time": 10}]},
                    [{"id": "2", "time": 5, "note_title": "note"}],
                ]
            )
        )

        source = StaticPageSource.from_json(path)

        page = await source.fetch_page("1")
        assert page.items[0].note_title == "note"

    def test_from_json_malformed(self, tmp_path):
        path = tmp_path / "pages.json"
        path.write_text('{"items": []}')
        with pytest.raises(ParseError):
            StaticPageSource.from_json(path)
