"""Key/value metadata persisted alongside notification records."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

LAST_FETCH_TIME_KEY = "last_fetch_time"


class MetaEntry(Base):
    """Process-wide scalar settings, e.g. the last successful scan time."""

    __tablename__ = "meta"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
