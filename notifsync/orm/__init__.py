"""ORM models for database persistence."""

from .base import Base, SqlalchemyBase
from .meta import LAST_FETCH_TIME_KEY, MetaEntry
from .notification import (
    CLOSED_STATUSES,
    OPEN_STATUSES,
    NotificationRecord,
    NotificationStatus,
)

__all__ = [
    "Base",
    "SqlalchemyBase",
    "CLOSED_STATUSES",
    "OPEN_STATUSES",
    "LAST_FETCH_TIME_KEY",
    "MetaEntry",
    "NotificationRecord",
    "NotificationStatus",
]
