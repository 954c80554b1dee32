"""Decode the creation time embedded in notification IDs."""

import logging
from typing import Iterable, Literal, Optional

from .config import IdClockConfig
from .errors import ParseError

logger = logging.getLogger(__name__)

# IDs are unsigned 64-bit integers.
_MAX_ID = (1 << 64) - 1


class IdClock:
    """Extract approximate Unix timestamps from snowflake-style identifiers.

    The high bits of an ID hold a coarse clock value. Shifting away
    ``shift_bits`` low-order bits yields either a millisecond offset from
    ``epoch_ms`` (``unit="ms"``) or raw Unix seconds (``unit="s"``).
    """

    def __init__(
        self,
        shift_bits: int,
        epoch_ms: int = 0,
        unit: Literal["ms", "s"] = "ms",
        safety_margin: int = 300,
    ):
        self.shift_bits = shift_bits
        self.epoch_ms = epoch_ms
        self.unit = unit
        self.safety_margin = safety_margin

    @classmethod
    def from_config(cls, config: IdClockConfig) -> "IdClock":
        return cls(
            shift_bits=config.shift_bits,
            epoch_ms=config.epoch_ms or 0,
            unit=config.unit,
            safety_margin=config.safety_margin_seconds,
        )

    @staticmethod
    def parse_id(identifier: str) -> int:
        """Parse an identifier as an unsigned decimal integer.

        Raises:
            ParseError: If the identifier is not a positive 64-bit integer.
        """
        text = str(identifier).strip()
        if not (text.isascii() and text.isdigit()):
            raise ParseError(f"Notification ID is not an unsigned integer: {identifier!r}")
        value = int(text)
        if value == 0 or value > _MAX_ID:
            raise ParseError(f"Notification ID out of range: {identifier!r}")
        return value

    def decode(self, identifier: str) -> Optional[int]:
        """Return the Unix time (seconds) embedded in ``identifier``, or None."""
        try:
            value = self.parse_id(identifier)
        except ParseError as e:
            logger.debug("Skipping undecodable ID: %s", e)
            return None

        clock = value >> self.shift_bits
        if self.unit == "s":
            return clock
        return (self.epoch_ms + clock) // 1000

    def earliest_time(self, identifiers: Iterable[str]) -> int:
        """Earliest decoded time across ``identifiers`` minus the safety margin.

        Returns 0 when nothing decodes, meaning no lower bound is known.
        """
        earliest: Optional[int] = None
        for identifier in identifiers:
            decoded = self.decode(identifier)
            if decoded is None:
                continue
            if earliest is None or decoded < earliest:
                earliest = decoded

        if earliest is None:
            return 0
        return max(earliest - self.safety_margin, 0)
