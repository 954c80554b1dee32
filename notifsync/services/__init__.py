"""Service layer for business logic and database operations."""

from .database import DatabaseService, open_database
from .lifecycle import LifecyclePolicy
from .notification_service import NotificationService
from .notification_store import NotificationStore
from .reconciler import Reconciler

__all__ = [
    "DatabaseService",
    "LifecyclePolicy",
    "NotificationService",
    "NotificationStore",
    "Reconciler",
    "open_database",
]
