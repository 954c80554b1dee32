"""Exception hierarchy for notification reconciliation."""


class NotifSyncError(Exception):
    """Base class for all notifsync errors."""


class ParseError(NotifSyncError):
    """Malformed identifier or malformed request/config input."""


class StorageError(NotifSyncError):
    """Durable store failure (open, query or write)."""


class SourceError(NotifSyncError):
    """The external notification feed failed while fetching a page."""


class InvalidStatusError(NotifSyncError):
    """A transition was requested to an unrecognized or non-reportable status."""

    def __init__(self, status: object):
        self.status = status
        super().__init__(f"Invalid notification status: {status!r}")


class NotFoundError(NotifSyncError):
    """No record exists for the given notification ID."""

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class InvalidTransitionError(NotifSyncError):
    """A transition out of a closed state was attempted in strict mode."""

    def __init__(self, notification_id: str, current: str, target: str):
        self.notification_id = notification_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition notification {notification_id} from {current} to {target}"
        )
