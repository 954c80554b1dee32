"""Tests for NotificationService and request validation."""

import pytest

from notifsync.config import Config, ScanConfig
from notifsync.errors import InvalidStatusError, InvalidTransitionError, ParseError
from notifsync.models import EntryTier, MarkResultRequest, PendingWorkRequest
from notifsync.services import NotificationService
from notifsync.source import StaticPageSource

from .helpers import make_item


class TestPendingWorkRequest:
    """Tests for boundary validation of scan arguments."""

    def test_defaults_from_config(self):
        request = PendingWorkRequest.from_args({}, ScanConfig(max_pages=7, max_results=9))
        assert request.max_pages == 7
        assert request.max_results == 9
        assert request.stop_after_consecutive_closed == 5
        assert request.since_unix is None
        assert request.full_scan is False

    def test_non_positive_values_fall_back(self):
        request = PendingWorkRequest.from_args(
            {"max_pages": 0, "max_results": -1, "since_unix": 0, "since_hours": None}
        )
        assert request.max_pages == 3
        assert request.max_results == 20
        assert request.since_unix is None
        assert request.since_hours == 48

    def test_float_arguments_are_coerced(self):
        """JSON clients send numbers as floats."""
        request = PendingWorkRequest.from_args({"max_pages": 10.0, "full_scan": True})
        assert request.max_pages == 10
        assert request.full_scan is True

    @pytest.mark.parametrize(
        "args",
        [
            {"max_pages": "many"},
            {"full_scan": "maybe"},
            {"unknown_option": 1},
        ],
    )
    def test_malformed_arguments(self, args):
        with pytest.raises(ParseError):
            PendingWorkRequest.from_args(args)


class TestMarkResultRequest:
    """Tests for boundary validation of outcome reports."""

    def test_valid(self):
        request = MarkResultRequest.from_args(
            {"notification_id": " 123 ", "status": "replied", "reply_content": "hi"}
        )
        assert request.notification_id == "123"
        assert request.status == "replied"

    @pytest.mark.parametrize(
        "args",
        [
            {"status": "replied"},
            {"notification_id": "", "status": "replied"},
            {"notification_id": "123"},
        ],
    )
    def test_malformed(self, args):
        with pytest.raises(ParseError):
            MarkResultRequest.from_args(args)

    @pytest.mark.parametrize("args", [None, ["123", "replied"], "123"])
    def test_non_mapping_arguments(self, args):
        with pytest.raises(ParseError):
            MarkResultRequest.from_args(args)


class TestNotificationService:
    """Tests for the facade used by the outer shell."""

    async def test_scan_then_mark_then_rescan(self, service):
        """A replied notification never comes back."""
        a, b = make_item(60), make_item(120)
        source = StaticPageSource([[a, b]])

        work = await service.get_pending_work({"max_pages": 1}, source=source)
        assert work.ids(EntryTier.NEW) == [a.id, b.id]

        response = await service.mark_result(
            {"notification_id": a.id, "status": "replied", "reply_content": "thanks"}
        )
        assert response.status == "replied"
        assert response.created is False

        work = await service.get_pending_work({"since_unix": 1}, source=source)
        assert work.ids() == [b.id]
        assert work.total_skipped == 1

    async def test_invalid_status_rejected(self, service):
        with pytest.raises(InvalidStatusError):
            await service.mark_result({"notification_id": "1", "status": "pending"})

    async def test_stats(self, service):
        source = StaticPageSource([[make_item(60), make_item(120)]])
        await service.get_pending_work(source=source)
        await service.mark_result({"notification_id": "77", "status": "skipped"})

        stats = await service.stats()
        assert stats.counts["pending"] == 2
        assert stats.counts["skipped"] == 1
        assert stats.total == 3
        assert stats.open == 2
        assert stats.last_scan_time > 0

    async def test_auto_skip_uses_configured_limit(self, db):
        service = NotificationService(db, Config(scan=ScanConfig(max_retries=3)))
        for _ in range(2):
            await service.mark_result({"notification_id": "5", "status": "retry"})
        assert (await service.stats()).counts["retry"] == 1

        response = await service.mark_result({"notification_id": "5", "status": "retry"})
        assert response.auto_skipped == 1
        assert await service.auto_skip() == 0

    async def test_strict_mode(self, db):
        service = NotificationService(db, Config(scan=ScanConfig(strict_transitions=True)))
        source = StaticPageSource([[make_item(60)]])
        work = await service.get_pending_work(source=source)
        notification_id = work.entries[0].notification_id

        await service.mark_result({"notification_id": notification_id, "status": "replied"})
        with pytest.raises(InvalidTransitionError):
            await service.mark_result({"notification_id": notification_id, "status": "retry"})

    async def test_requires_source(self, service):
        with pytest.raises(RuntimeError):
            await service.get_pending_work()

    async def test_result_serializes(self, service):
        source = StaticPageSource([[make_item(60)]])
        work = await service.get_pending_work(source=source)

        data = work.to_dict()
        assert data["entries"][0]["tier"] == "new"
        assert data["total_new"] == 1
