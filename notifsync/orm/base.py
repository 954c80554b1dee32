"""Base classes for ORM models."""

import time

from sqlalchemy import Integer, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def unix_now() -> int:
    """Current time in whole Unix seconds."""
    return int(time.time())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class SqlalchemyBase(Base):
    """Base model with Unix-second timestamps.

    Rows are never deleted; ``updated_at`` is restamped on every write.
    """

    __abstract__ = True

    created_at: Mapped[int] = mapped_column(
        Integer, nullable=False, default=unix_now, server_default=text("0")
    )
    updated_at: Mapped[int] = mapped_column(
        Integer, nullable=False, default=unix_now, onupdate=unix_now, server_default=text("0")
    )
