"""Notification reconciliation and deduplication engine."""

from .config import Config, load_config
from .errors import (
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    NotifSyncError,
    ParseError,
    SourceError,
    StorageError,
)
from .id_clock import IdClock
from .models import (
    EntryTier,
    MarkResultRequest,
    MarkResultResponse,
    PendingEntry,
    PendingWork,
    PendingWorkRequest,
    StoreStats,
)
from .orm import NotificationRecord, NotificationStatus
from .services import NotificationService, NotificationStore, open_database
from .source import NotificationPage, NotificationSource, RawNotification, StaticPageSource

__all__ = [
    "Config",
    "EntryTier",
    "IdClock",
    "InvalidStatusError",
    "InvalidTransitionError",
    "MarkResultRequest",
    "MarkResultResponse",
    "NotFoundError",
    "NotifSyncError",
    "NotificationPage",
    "NotificationRecord",
    "NotificationService",
    "NotificationSource",
    "NotificationStatus",
    "NotificationStore",
    "ParseError",
    "PendingEntry",
    "PendingWork",
    "PendingWorkRequest",
    "RawNotification",
    "SourceError",
    "StaticPageSource",
    "StorageError",
    "StoreStats",
    "load_config",
    "open_database",
]
