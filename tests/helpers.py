"""Builders for feed items and test sources."""

import time
from typing import Optional

from notifsync.config import SNOWFLAKE_EPOCH_MS
from notifsync.errors import SourceError
from notifsync.source import NotificationPage, RawNotification, StaticPageSource

# Real clock; NotificationService scans without an injected "now".
NOW = int(time.time())


def make_id(unix_seconds: int, sequence: int = 0) -> str:
    """Build a snowflake-style ID whose clock decodes to ``unix_seconds``."""
    offset_ms = unix_seconds * 1000 - SNOWFLAKE_EPOCH_MS
    return str((offset_ms << 22) | sequence)


def make_item(seconds_ago: int, sequence: int = 0, **fields) -> RawNotification:
    """A feed item ``seconds_ago`` before NOW with a matching ID."""
    notif_time = NOW - seconds_ago
    defaults = {
        "relation_type": "comment_on_my_note",
        "user_id": f"user-{sequence}",
        "user_nickname": f"User {sequence}",
        "comment_id": f"comment-{seconds_ago}-{sequence}",
        "comment_content": f"hello from {seconds_ago}",
        "feed_id": "feed-1",
        "xsec_token": "token-1",
        "note_title": "My note",
    }
    defaults.update(fields)
    return RawNotification(id=make_id(notif_time, sequence), time=notif_time, **defaults)


class FlakySource(StaticPageSource):
    """Static pages that fail once page ``fail_on`` is requested."""

    def __init__(self, pages, fail_on: int):
        super().__init__(pages)
        self.fail_on = fail_on

    async def fetch_page(self, cursor: Optional[str]) -> NotificationPage:
        index = int(cursor) if cursor else 0
        if index == self.fail_on:
            raise SourceError(f"timeout fetching page {index}")
        return await super().fetch_page(cursor)

