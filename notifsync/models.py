"""Typed requests and structured results exchanged with callers."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import ScanConfig
from .errors import ParseError
from .orm.notification import NotificationRecord
from .source import RawNotification


class EntryTier(str, Enum):
    """Why an entry is part of the pending work."""

    NEW = "new"
    RETRY = "retry"
    DELETED_CHECK = "deleted_check"
    STORE_ONLY = "store_only"


class PendingWorkRequest(BaseModel):
    """Validated parameters for one reconciliation scan."""

    model_config = ConfigDict(extra="forbid")

    max_pages: int = Field(default=3, ge=1)
    stop_after_consecutive_closed: int = Field(default=5, ge=1)
    since_unix: Optional[int] = Field(default=None, ge=0)
    since_hours: int = Field(default=48, ge=1)
    max_results: int = Field(default=20, ge=1)
    full_scan: bool = False

    @classmethod
    def from_args(
        cls, args: Optional[dict[str, Any]] = None, defaults: Optional[ScanConfig] = None
    ) -> "PendingWorkRequest":
        """Validate loosely typed arguments from the outer shell.

        Missing or non-positive numeric values fall back to ``defaults``.

        Raises:
            ParseError: If any argument is malformed.
        """
        defaults = defaults or ScanConfig()
        values: dict[str, Any] = {
            "max_pages": defaults.max_pages,
            "stop_after_consecutive_closed": defaults.stop_after_consecutive_closed,
            "since_hours": defaults.since_hours,
            "max_results": defaults.max_results,
        }
        for key, value in (args or {}).items():
            if value is None:
                continue
            if key in values and isinstance(value, (int, float)) and not isinstance(value, bool):
                if value <= 0:
                    continue
                value = int(value)
            elif key == "since_unix" and isinstance(value, (int, float)) and value <= 0:
                continue
            values[key] = value

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ParseError(f"Invalid pending-work request: {e}") from e


class MarkResultRequest(BaseModel):
    """Validated outcome report for one notification.

    ``status`` stays a plain string here; the lifecycle policy decides
    whether it names a reportable status.
    """

    model_config = ConfigDict(extra="forbid")

    notification_id: str = Field(min_length=1)
    status: str
    reply_content: str = ""

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> "MarkResultRequest":
        """Validate loosely typed arguments from the outer shell.

        Raises:
            ParseError: If any argument is malformed.
        """
        if not isinstance(args, dict):
            raise ParseError(f"Mark-result arguments must be a mapping, got {type(args).__name__}")
        values = dict(args)
        if isinstance(values.get("notification_id"), str):
            values["notification_id"] = values["notification_id"].strip()
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ParseError(f"Invalid mark-result request: {e}") from e


@dataclass
class PendingEntry:
    """A notification that still needs action, with its display fields."""

    tier: EntryTier
    notification_id: str
    status: str
    notif_time_unix: int
    retry_count: int = 0
    relation_type: str = ""
    user_id: str = ""
    user_nickname: str = ""
    comment_id: str = ""
    comment_content: str = ""
    parent_comment_id: str = ""
    target_comment_author: str = ""
    target_comment_content: str = ""
    feed_id: str = ""
    xsec_token: str = ""
    note_title: str = ""
    reply_content: str = ""

    @classmethod
    def from_scan(
        cls,
        tier: EntryTier,
        item: RawNotification,
        record: Optional[NotificationRecord] = None,
    ) -> "PendingEntry":
        """Entry for a freshly scanned item, enriched with its stored state."""
        return cls(
            tier=tier,
            notification_id=item.id,
            status=record.status if record is not None else "pending",
            notif_time_unix=item.time,
            retry_count=record.retry_count if record is not None else 0,
            relation_type=item.relation_type,
            user_id=item.user_id,
            user_nickname=item.user_nickname,
            comment_id=item.comment_id,
            comment_content=item.comment_content,
            parent_comment_id=item.parent_comment_id,
            target_comment_author=item.target_comment_author,
            target_comment_content=item.target_comment_content,
            feed_id=item.feed_id,
            xsec_token=item.xsec_token,
            note_title=item.note_title,
            reply_content=record.reply_content if record is not None else "",
        )

    @classmethod
    def from_record(cls, record: NotificationRecord) -> "PendingEntry":
        """Store-only entry for backlog the scan did not re-observe."""
        return cls(
            tier=EntryTier.STORE_ONLY,
            notification_id=record.id,
            status=record.status,
            notif_time_unix=record.notif_time_unix,
            retry_count=record.retry_count,
            relation_type=record.relation_type,
            user_id=record.user_id,
            user_nickname=record.user_nickname,
            comment_id=record.comment_id,
            comment_content=record.comment_content,
            parent_comment_id=record.parent_comment_id,
            feed_id=record.feed_id,
            xsec_token=record.xsec_token,
            note_title=record.note_title,
            reply_content=record.reply_content,
        )


@dataclass
class PendingWork:
    """Merged pending work plus scan counters."""

    entries: list[PendingEntry] = field(default_factory=list)
    pages_scanned: int = 0
    total_scanned: int = 0
    total_skipped: int = 0
    total_new: int = 0
    total_retry: int = 0
    total_deleted_recheck: int = 0
    total_too_old: int = 0
    total_store_only: int = 0
    has_more: bool = False
    since_unix: int = 0
    missing_retry_ids: list[str] = field(default_factory=list)
    source_error: Optional[str] = None

    @property
    def total_pending(self) -> int:
        return len(self.entries)

    def ids(self, tier: Optional[EntryTier] = None) -> list[str]:
        return [e.notification_id for e in self.entries if tier is None or e.tier == tier]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for entry in data["entries"]:
            entry["tier"] = entry["tier"].value
        return data


@dataclass
class MarkResultResponse:
    """Outcome of a mark-result call."""

    notification_id: str
    status: str
    created: bool = False
    auto_skipped: int = 0


@dataclass
class StoreStats:
    """Per-status record counts plus the last successful scan time."""

    counts: dict[str, int]
    last_scan_time: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def open(self) -> int:
        return sum(self.counts.get(s, 0) for s in ("pending", "retry", "deleted_check"))
