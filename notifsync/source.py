"""External notification source interface and raw item types."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from .errors import ParseError, SourceError
from .orm.notification import NotificationRecord

logger = logging.getLogger(__name__)


class RelationType(str, Enum):
    """How a notification relates to the bot account."""

    COMMENT_ON_MY_NOTE = "comment_on_my_note"
    REPLY_TO_MY_COMMENT = "reply_to_my_comment"
    AT_OTHERS_UNDER_MY_COMMENT = "at_others_under_my_comment"
    MENTIONED_ME = "mentioned_me"


@dataclass
class RawNotification:
    """A notification item as returned by the feed."""

    id: str
    time: int
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

    @property
    def is_reply(self) -> bool:
        return bool(self.parent_comment_id)

    def to_record(self) -> NotificationRecord:
        """Build an unsaved record carrying this item's display fields."""
        return NotificationRecord(
            id=self.id,
            feed_id=self.feed_id,
            xsec_token=self.xsec_token,
            comment_id=self.comment_id,
            parent_comment_id=self.parent_comment_id,
            comment_content=self.comment_content,
            user_id=self.user_id,
            user_nickname=self.user_nickname,
            note_title=self.note_title,
            relation_type=self.relation_type,
            notif_time_unix=self.time,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawNotification":
        """Build an item from a plain mapping, ignoring unknown keys.

        Raises:
            ParseError: If ``id`` or ``time`` is missing or malformed.
        """
        try:
            notification_id = str(data["id"]).strip()
            notif_time = int(data["time"])
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Malformed notification item: {data!r}") from e
        if not notification_id:
            raise ParseError(f"Notification item has an empty id: {data!r}")

        known = {name for name in cls.__dataclass_fields__} - {"id", "time"}
        extra = {k: str(v) for k, v in data.items() if k in known and v is not None}
        return cls(id=notification_id, time=notif_time, **extra)


@dataclass
class NotificationPage:
    """One page of the feed, newest items first."""

    items: list[RawNotification] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class NotificationSource(Protocol):
    """Pull-based, page-at-a-time access to the notification feed.

    Implementations raise SourceError when a page cannot be fetched.
    """

    async def fetch_page(self, cursor: Optional[str]) -> NotificationPage:
        ...


class StaticPageSource:
    """Serve a fixed list of pages, e.g. a captured feed dump.

    The cursor is the index of the next page as a string.
    """

    def __init__(self, pages: Sequence[Sequence[RawNotification]]):
        self.pages = [list(page) for page in pages]
        self.fetch_count = 0

    async def fetch_page(self, cursor: Optional[str]) -> NotificationPage:
        if not self.pages:
            return NotificationPage()

        index = int(cursor) if cursor else 0
        if index < 0 or index >= len(self.pages):
            raise SourceError(f"No page for cursor {cursor!r}")

        self.fetch_count += 1
        has_more = index + 1 < len(self.pages)
        return NotificationPage(
            items=list(self.pages[index]),
            next_cursor=str(index + 1) if has_more else None,
            has_more=has_more,
        )

    @classmethod
    def from_json(cls, path: str | Path) -> "StaticPageSource":
        """Load pages from a JSON file.

        Accepted shapes: a list of pages where each page is either a list of
        items or an object with an ``items`` list.
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ParseError(f"Cannot read pages from {path}: {e}") from e

        if not isinstance(raw, list):
            raise ParseError(f"Expected a list of pages in {path}")

        pages = []
        for page in raw:
            items = page.get("items", []) if isinstance(page, dict) else page
            if not isinstance(items, list):
                raise ParseError(f"Malformed page in {path}: {page!r}")
            pages.append([RawNotification.from_dict(item) for item in items])

        logger.debug("Loaded %d page(s) from %s", len(pages), path)
        return cls(pages)
