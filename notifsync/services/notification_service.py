"""Entry points for the outer request-handling shell."""

import logging
from typing import Any, Optional

from ..config import Config
from ..id_clock import IdClock
from ..models import (
    MarkResultRequest,
    MarkResultResponse,
    PendingWork,
    PendingWorkRequest,
    StoreStats,
)
from ..source import NotificationSource
from .database import DatabaseService
from .lifecycle import LifecyclePolicy
from .notification_store import NotificationStore
from .reconciler import Reconciler

logger = logging.getLogger(__name__)


class NotificationService:
    """Validates caller input and wires the store, policy and reconciler.

    One instance (and one store) is built per process and handed to
    whoever handles requests.
    """

    def __init__(
        self,
        db: DatabaseService,
        config: Optional[Config] = None,
        source: Optional[NotificationSource] = None,
    ):
        self.config = config or Config()
        self.store = NotificationStore(db)
        self.policy = LifecyclePolicy(
            self.store, IdClock.from_config(self.config.id_clock), self.config.scan
        )
        self.source = source

    def reconciler(self, source: Optional[NotificationSource] = None) -> Reconciler:
        source = source or self.source
        if source is None:
            raise RuntimeError("No notification source configured")
        return Reconciler(self.store, self.policy, source)

    async def get_pending_work(
        self,
        request: PendingWorkRequest | dict[str, Any] | None = None,
        source: Optional[NotificationSource] = None,
    ) -> PendingWork:
        """Scan and return merged pending work.

        Raises:
            ParseError: If ``request`` is an invalid argument mapping.
            StorageError: If the store fails.
        """
        if not isinstance(request, PendingWorkRequest):
            request = PendingWorkRequest.from_args(request, self.config.scan)
        return await self.reconciler(source).get_pending_work(request)

    async def mark_result(
        self, request: MarkResultRequest | dict[str, Any]
    ) -> MarkResultResponse:
        """Record the outcome the caller reached for one notification.

        Raises:
            ParseError: Malformed arguments.
            InvalidStatusError: Unknown or non-reportable status.
            NotFoundError, InvalidTransitionError: Strict mode violations.
        """
        if not isinstance(request, MarkResultRequest):
            request = MarkResultRequest.from_args(request)

        created, auto_skipped = await self.policy.mark_result(
            request.notification_id, request.status, request.reply_content
        )
        return MarkResultResponse(
            notification_id=request.notification_id,
            status=self.policy.parse_status(request.status).value,
            created=created,
            auto_skipped=auto_skipped,
        )

    async def auto_skip(self, threshold: Optional[int] = None) -> int:
        return await self.policy.auto_skip(threshold)

    async def stats(self) -> StoreStats:
        """Per-status counts and the last successful scan time."""
        counts = await self.store.stats()
        last_scan_time = await self.store.get_last_scan_time()
        return StoreStats(counts=counts, last_scan_time=last_scan_time)
