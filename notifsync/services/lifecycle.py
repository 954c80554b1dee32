"""Lifecycle rules for notification status transitions and scan windows."""

import logging
from typing import Iterable, Optional

from ..config import ScanConfig
from ..errors import InvalidStatusError
from ..id_clock import IdClock
from ..orm.base import unix_now
from ..orm.notification import NotificationStatus
from .notification_store import NotificationStore

logger = logging.getLogger(__name__)

# Statuses a caller may report as an outcome.
REPORTABLE_STATUSES = frozenset(
    {
        NotificationStatus.REPLIED,
        NotificationStatus.SKIPPED,
        NotificationStatus.RETRY,
        NotificationStatus.DELETED_CHECK,
    }
)

# Lookback used when falling back to the last scan time.
LAST_SCAN_MARGIN_SECONDS = 300


class LifecyclePolicy:
    """State machine over notification statuses plus scan-window derivation.

    ``replied`` and ``skipped`` are terminal. In lenient mode (the default)
    the store is trusted to auto-create unknown IDs and transitions out of
    terminal states are let through; strict mode rejects both.
    """

    def __init__(
        self,
        store: NotificationStore,
        id_clock: IdClock,
        config: Optional[ScanConfig] = None,
    ):
        self.store = store
        self.id_clock = id_clock
        self.config = config or ScanConfig()

    @property
    def strict(self) -> bool:
        return self.config.strict_transitions

    @staticmethod
    def parse_status(value: object) -> NotificationStatus:
        """Validate a caller-supplied outcome status.

        Raises:
            InvalidStatusError: If ``value`` is not a reportable status.
        """
        if isinstance(value, NotificationStatus):
            status = value
        else:
            try:
                status = NotificationStatus(str(value).strip().lower())
            except ValueError:
                raise InvalidStatusError(value) from None
        if status not in REPORTABLE_STATUSES:
            raise InvalidStatusError(value)
        return status

    async def mark_result(
        self, notification_id: str, status: object, reply_content: str = ""
    ) -> tuple[bool, int]:
        """Record an outcome for one notification.

        Returns:
            (created, auto_skipped): whether the record was created by this
            call, and how many retries the follow-up sweep skipped.

        Raises:
            InvalidStatusError: Unknown or non-reportable status.
            NotFoundError: Strict mode and no record for ``notification_id``.
            InvalidTransitionError: Strict mode and the record is closed.
        """
        target = self.parse_status(status)

        updated = await self.store.mark_result(
            notification_id,
            target,
            reply_content,
            create_missing=not self.strict,
            require_open=self.strict,
        )
        logger.info("Marked %s as %s", notification_id, target.value)

        auto_skipped = 0
        if target is NotificationStatus.RETRY:
            auto_skipped = await self.auto_skip()
        return not updated, auto_skipped

    async def auto_skip(self, threshold: Optional[int] = None) -> int:
        """Skip retries that reached ``threshold`` (default: configured max)."""
        if threshold is None:
            threshold = self.config.max_retries
        return await self.store.auto_skip_excessive_retries(threshold)

    async def scan_start(
        self,
        processed_ids: Iterable[str],
        since_unix: Optional[int] = None,
        since_hours: Optional[int] = None,
        now: Optional[int] = None,
    ) -> int:
        """Lower time bound for the next scan.

        An explicit ``since_unix`` wins. Otherwise the earliest time encoded
        in the closed IDs is used, then the last scan time, then a plain
        ``since_hours`` lookback.
        """
        if since_unix:
            return since_unix

        start = self.id_clock.earliest_time(processed_ids)
        if start:
            logger.debug("Scan start from closed IDs: %d", start)
            return start

        last_scan = await self.store.get_last_scan_time()
        if last_scan > 0:
            logger.debug("Scan start from last scan time: %d", last_scan)
            return max(last_scan - LAST_SCAN_MARGIN_SECONDS, 0)

        now = now if now is not None else unix_now()
        hours = since_hours or self.config.since_hours
        return now - hours * 3600

    async def advance_last_scan_time(self, newest: int) -> int:
        """Move the last scan time forward to ``newest``; never backwards.

        Returns the effective stored value.
        """
        current = await self.store.get_last_scan_time()
        if newest > current:
            await self.store.set_last_scan_time(newest)
            logger.debug("Last scan time advanced %d -> %d", current, newest)
            return newest
        return current
