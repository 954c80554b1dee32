"""Durable per-notification status store."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import InvalidTransitionError, NotFoundError, StorageError
from ..orm.base import unix_now
from ..orm.meta import LAST_FETCH_TIME_KEY, MetaEntry
from ..orm.notification import (
    OPEN_STATUSES,
    NotificationRecord,
    NotificationStatus,
)
from .database import DatabaseService

logger = logging.getLogger(__name__)

_notifications = NotificationRecord.__table__
_meta = MetaEntry.__table__

AUTO_SKIP_REPLY = "auto-skipped: retry limit exceeded"

_DISPLAY_FIELDS = (
    "feed_id",
    "xsec_token",
    "comment_id",
    "parent_comment_id",
    "comment_content",
    "user_id",
    "user_nickname",
    "note_title",
    "relation_type",
    "notif_time_unix",
)


def _status_values(statuses: Iterable[NotificationStatus | str]) -> list[str]:
    return [NotificationStatus(s).value for s in statuses]


class NotificationStore:
    """Status store keyed by notification ID.

    Every public operation runs in its own transaction behind a single
    lock, so there is at most one reader or writer at a time. Records are
    only ever inserted or transitioned, never deleted.
    """

    def __init__(self, db: DatabaseService):
        self.db = db
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncGenerator[AsyncSession, None]:
        async with self._lock:
            try:
                async with self.db.session() as session:
                    yield session
            except SQLAlchemyError as e:
                logger.error("Storage failure during %s: %s", action, e, exc_info=True)
                raise StorageError(f"{action} failed: {e}") from e

    async def upsert_new(self, records: Sequence[NotificationRecord]) -> int:
        """Insert records whose ID is not yet stored; existing rows are untouched.

        New rows always start as ``pending``. Returns the number inserted.
        """
        if not records:
            return 0

        now = unix_now()
        inserted = 0
        async with self._transaction("upsert_new") as session:
            for record in records:
                values = {name: getattr(record, name) for name in _DISPLAY_FIELDS}
                for name, value in values.items():
                    if value is None:
                        values[name] = 0 if name == "notif_time_unix" else ""
                stmt = (
                    sqlite_insert(_notifications)
                    .values(
                        id=record.id,
                        status=NotificationStatus.PENDING.value,
                        retry_count=0,
                        reply_content="",
                        created_at=now,
                        updated_at=now,
                        **values,
                    )
                    .on_conflict_do_nothing(index_elements=["id"])
                )
                result = await session.execute(stmt)
                inserted += result.rowcount or 0

        logger.debug("upsert_new: %d of %d record(s) inserted", inserted, len(records))
        return inserted

    async def mark_result(
        self,
        notification_id: str,
        status: NotificationStatus,
        reply_content: str = "",
        create_missing: bool = True,
        require_open: bool = False,
    ) -> bool:
        """Transition a record to ``status``.

        Entering ``retry`` increments ``retry_count``. An unknown ID is
        created directly in the target status when ``create_missing`` is set.
        With ``require_open`` the record must currently be open; the check and
        the write happen in one transaction.

        Returns:
            True if an existing record was updated, False if one was created.

        Raises:
            NotFoundError: If the ID is unknown and ``create_missing`` is False.
            InvalidTransitionError: If ``require_open`` is set and the record
                is closed.
        """
        status = NotificationStatus(status)
        now = unix_now()
        values = {"status": status.value, "reply_content": reply_content, "updated_at": now}
        if status is NotificationStatus.RETRY:
            values["retry_count"] = _notifications.c.retry_count + 1

        stmt = update(_notifications).where(_notifications.c.id == notification_id)
        if require_open:
            stmt = stmt.where(_notifications.c.status.in_(_status_values(OPEN_STATUSES)))

        async with self._transaction("mark_result") as session:
            result = await session.execute(stmt.values(**values))
            if result.rowcount:
                return True

            if require_open:
                current = await session.scalar(
                    select(NotificationRecord.status).where(NotificationRecord.id == notification_id)
                )
                if current is not None:
                    raise InvalidTransitionError(notification_id, current, status.value)

            if not create_missing:
                raise NotFoundError(notification_id)

            # Reported outside a scan, e.g. an ID from before the store existed
            session.add(
                NotificationRecord(
                    id=notification_id,
                    status=status.value,
                    retry_count=1 if status is NotificationStatus.RETRY else 0,
                    reply_content=reply_content,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info("Created record %s directly as %s", notification_id, status.value)
        return False

    async def get_record(self, notification_id: str) -> Optional[NotificationRecord]:
        """Get a single record, or None."""
        async with self._transaction("get_record") as session:
            return await session.get(NotificationRecord, notification_id)

    async def get_ids_by_status(self, *statuses: NotificationStatus | str) -> set[str]:
        """IDs currently in any of ``statuses``."""
        if not statuses:
            return set()
        async with self._transaction("get_ids_by_status") as session:
            result = await session.execute(
                select(NotificationRecord.id).where(
                    NotificationRecord.status.in_(_status_values(statuses))
                )
            )
            return set(result.scalars().all())

    async def get_open_records(self) -> list[NotificationRecord]:
        """Full records for every open status, most recent notification first."""
        async with self._transaction("get_open_records") as session:
            result = await session.execute(
                select(NotificationRecord)
                .where(NotificationRecord.status.in_(_status_values(OPEN_STATUSES)))
                .order_by(NotificationRecord.notif_time_unix.desc(), NotificationRecord.id.desc())
            )
            return list(result.scalars().all())

    async def auto_skip_excessive_retries(self, threshold: int) -> int:
        """Skip every ``retry`` record with ``retry_count >= threshold``.

        Returns the number of records skipped.
        """
        async with self._transaction("auto_skip_excessive_retries") as session:
            result = await session.execute(
                update(_notifications)
                .where(
                    _notifications.c.status == NotificationStatus.RETRY.value,
                    _notifications.c.retry_count >= threshold,
                )
                .values(
                    status=NotificationStatus.SKIPPED.value,
                    reply_content=AUTO_SKIP_REPLY,
                    updated_at=unix_now(),
                )
            )
            count = result.rowcount or 0

        if count:
            logger.info("Auto-skipped %d notification(s) at %d retries", count, threshold)
        return count

    async def get_last_scan_time(self) -> int:
        """Last successful scan time in Unix seconds, 0 if never set."""
        async with self._transaction("get_last_scan_time") as session:
            entry = await session.get(MetaEntry, LAST_FETCH_TIME_KEY)
            if entry is None:
                return 0
            try:
                return int(entry.value)
            except ValueError:
                logger.warning("Ignoring malformed %s value: %r", LAST_FETCH_TIME_KEY, entry.value)
                return 0

    async def set_last_scan_time(self, unix_seconds: int) -> None:
        """Persist the last scan time; monotonicity is up to the caller."""
        async with self._transaction("set_last_scan_time") as session:
            stmt = sqlite_insert(_meta).values(key=LAST_FETCH_TIME_KEY, value=str(unix_seconds))
            stmt = stmt.on_conflict_do_update(
                index_elements=["key"], set_={"value": stmt.excluded["value"]}
            )
            await session.execute(stmt)

    async def stats(self) -> dict[str, int]:
        """Number of records in each status."""
        counts = {status.value: 0 for status in NotificationStatus}
        async with self._transaction("stats") as session:
            result = await session.execute(
                select(NotificationRecord.status, func.count(NotificationRecord.id)).group_by(
                    NotificationRecord.status
                )
            )
            for status, count in result.all():
                counts[status] = count
        return counts
