"""NotificationRecord model for per-notification processing state."""

import enum

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import SqlalchemyBase


class NotificationStatus(str, enum.Enum):
    """Processing state of a notification."""

    PENDING = "pending"
    RETRY = "retry"
    DELETED_CHECK = "deleted_check"
    REPLIED = "replied"
    SKIPPED = "skipped"


OPEN_STATUSES = frozenset(
    {NotificationStatus.PENDING, NotificationStatus.RETRY, NotificationStatus.DELETED_CHECK}
)
CLOSED_STATUSES = frozenset({NotificationStatus.REPLIED, NotificationStatus.SKIPPED})


def _text_column(**kwargs) -> Mapped[str]:
    return mapped_column(Text, nullable=False, default="", server_default=text("''"), **kwargs)


class NotificationRecord(SqlalchemyBase):
    """One row per distinct notification ID, the unit of dedup."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_status", "status"),
        Index("idx_notif_time", "notif_time_unix"),
        Index("idx_updated_at", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=NotificationStatus.PENDING.value,
        server_default=text("'pending'"),
    )
    retry_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    # Display fields, captured at first sight
    feed_id: Mapped[str] = _text_column()
    xsec_token: Mapped[str] = _text_column()  # access token for the note
    comment_id: Mapped[str] = _text_column()
    parent_comment_id: Mapped[str] = _text_column()
    comment_content: Mapped[str] = _text_column()
    user_id: Mapped[str] = _text_column()
    user_nickname: Mapped[str] = _text_column()
    note_title: Mapped[str] = _text_column()
    relation_type: Mapped[str] = _text_column()
    notif_time_unix: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    reply_content: Mapped[str] = _text_column()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<NotificationRecord(id={self.id}, status={self.status}, "
            f"retry_count={self.retry_count}, notif_time={self.notif_time_unix})>"
        )
