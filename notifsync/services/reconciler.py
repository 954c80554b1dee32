"""Reconcile fresh feed scans with stored notification state."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import SourceError
from ..models import EntryTier, PendingEntry, PendingWork, PendingWorkRequest
from ..orm.notification import NotificationStatus
from ..source import NotificationPage, NotificationSource, RawNotification
from .lifecycle import LifecyclePolicy
from .notification_store import NotificationStore

logger = logging.getLogger(__name__)


@dataclass
class _ScanState:
    """Mutable bookkeeping for one scan call."""

    processed: set[str]
    retry_ids: set[str]
    deleted_check_ids: set[str]
    since_unix: int
    accepted: list[tuple[EntryTier, RawNotification]] = field(default_factory=list)
    seen_ids: set[str] = field(default_factory=set)
    consecutive_closed: int = 0
    newest_time: int = 0
    stop: bool = False
    window_exhausted: bool = False

    def tier_for(self, notification_id: str) -> EntryTier:
        if notification_id in self.retry_ids:
            return EntryTier.RETRY
        if notification_id in self.deleted_check_ids:
            return EntryTier.DELETED_CHECK
        return EntryTier.NEW


class Reconciler:
    """Builds the pending-work view from a bounded scan plus the store backlog.

    Pages are pulled strictly one after another. New items are upserted
    once per page after the whole page has been classified, so a failed
    fetch never leaves a partially ingested page behind.
    """

    def __init__(
        self,
        store: NotificationStore,
        policy: LifecyclePolicy,
        source: NotificationSource,
    ):
        self.store = store
        self.policy = policy
        self.source = source

    async def get_pending_work(
        self, request: Optional[PendingWorkRequest] = None, now: Optional[int] = None
    ) -> PendingWork:
        """Scan the feed and merge the results with stored open records."""
        request = request or PendingWorkRequest()

        processed = await self.store.get_ids_by_status(
            NotificationStatus.REPLIED, NotificationStatus.SKIPPED
        )
        retry_ids = await self.store.get_ids_by_status(NotificationStatus.RETRY)
        deleted_check_ids = await self.store.get_ids_by_status(NotificationStatus.DELETED_CHECK)
        since_unix = await self.policy.scan_start(
            processed, request.since_unix, request.since_hours, now
        )

        logger.info(
            "Scanning notifications: processed=%d, retry=%d, deleted_check=%d, "
            "max_pages=%d, full_scan=%s, since_unix=%d, max_results=%d",
            len(processed),
            len(retry_ids),
            len(deleted_check_ids),
            request.max_pages,
            request.full_scan,
            since_unix,
            request.max_results,
        )

        state = _ScanState(
            processed=processed,
            retry_ids=retry_ids,
            deleted_check_ids=deleted_check_ids,
            since_unix=since_unix,
        )
        work = PendingWork(since_unix=since_unix)

        cursor: Optional[str] = None
        try:
            while work.pages_scanned < request.max_pages:
                page = await self.source.fetch_page(cursor)
                work.pages_scanned += 1
                await self._ingest_page(page, request, state, work)

                if state.stop or state.window_exhausted:
                    break
                if not page.has_more or not page.next_cursor:
                    break
                cursor = page.next_cursor
        except SourceError as e:
            logger.warning(
                "Feed fetch failed after %d page(s), keeping partial results: %s",
                work.pages_scanned,
                e,
            )
            work.source_error = str(e)

        if state.newest_time:
            await self.policy.advance_last_scan_time(state.newest_time)

        await self._merge(state, work)

        logger.info(
            "Scan finished: pages=%d scanned=%d skipped=%d too_old=%d new=%d retry=%d "
            "deleted_check=%d store_only=%d has_more=%s",
            work.pages_scanned,
            work.total_scanned,
            work.total_skipped,
            work.total_too_old,
            work.total_new,
            work.total_retry,
            work.total_deleted_recheck,
            work.total_store_only,
            work.has_more,
        )
        return work

    async def _ingest_page(
        self,
        page: NotificationPage,
        request: PendingWorkRequest,
        state: _ScanState,
        work: PendingWork,
    ) -> None:
        """Classify one page in feed order and upsert its new items as a batch."""
        page_new: list[RawNotification] = []

        for item in page.items:
            if item.id in state.seen_ids:
                continue
            state.seen_ids.add(item.id)
            work.total_scanned += 1
            state.newest_time = max(state.newest_time, item.time)

            if item.id in state.processed:
                work.total_skipped += 1
                state.consecutive_closed += 1
                if (
                    not request.full_scan
                    and state.consecutive_closed >= request.stop_after_consecutive_closed
                ):
                    logger.debug(
                        "Stopping after %d consecutive closed notifications at %s",
                        state.consecutive_closed,
                        item.id,
                    )
                    state.stop = True
                    break
                continue

            state.consecutive_closed = 0

            if item.time < state.since_unix:
                work.total_too_old += 1
                state.window_exhausted = True
                continue

            if len(state.accepted) >= request.max_results:
                work.has_more = True
                state.stop = True
                break

            tier = state.tier_for(item.id)
            logger.debug("Notification %s classified as %s", item.id, tier.value)
            state.accepted.append((tier, item))
            if tier is EntryTier.RETRY:
                work.total_retry += 1
            elif tier is EntryTier.DELETED_CHECK:
                work.total_deleted_recheck += 1
            else:
                work.total_new += 1
                page_new.append(item)

        if page_new:
            await self.store.upsert_new([item.to_record() for item in page_new])

    async def _merge(self, state: _ScanState, work: PendingWork) -> None:
        """Scanned entries first, then open records this scan did not return."""
        open_records = await self.store.get_open_records()
        by_id = {record.id: record for record in open_records}

        accepted_ids = set()
        for tier, item in state.accepted:
            accepted_ids.add(item.id)
            work.entries.append(PendingEntry.from_scan(tier, item, by_id.get(item.id)))

        for record in open_records:
            if record.id in accepted_ids:
                continue
            work.entries.append(PendingEntry.from_record(record))
            work.total_store_only += 1

        work.missing_retry_ids = sorted(state.retry_ids - accepted_ids)
        if work.missing_retry_ids:
            logger.info(
                "%d retry notification(s) not found in this scan: %s",
                len(work.missing_retry_ids),
                ", ".join(work.missing_retry_ids),
            )
