"""
HTTP Range resolution for partial-content delivery.

Only a single `bytes=<start>-<end>` range is served; `end` is optional and a
value past the last byte is clamped to it. Everything else (multiple ranges,
suffix ranges like `bytes=-500`, other units, reversed bounds) is rejected
rather than guessed at.
"""
import re
from dataclasses import dataclass
from typing import Optional

from app.exceptions import RangeNotSatisfiableError

_SINGLE_RANGE = re.compile(r"^bytes=(\d+)-(\d*)$", re.IGNORECASE)


@dataclass(frozen=True)
class RangeWindow:
    """Inclusive byte window [start, end] into an object of total_size bytes."""
    start: int
    end: int
    total_size: int
    partial: bool

    @classmethod
    def full(cls, total_size: int) -> "RangeWindow":
        return cls(start=0, end=total_size - 1, total_size=total_size, partial=False)

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> Optional[str]:
        """Content-Range header value, None for full-object responses."""
        if not self.partial:
            return None
        return f"bytes {self.start}-{self.end}/{self.total_size}"


def resolve_range(range_header: Optional[str], total_size: int) -> RangeWindow:
    """
    Resolve a Range header against an object size.

    Args:
        range_header: Raw Range header value, or None when absent
        total_size: Object size in bytes

    Returns:
        RangeWindow; `partial` is False when the whole object should be served

    Raises:
        RangeNotSatisfiableError: If the header is malformed, unsupported,
            or starts at or beyond the end of the object
    """
    if range_header is None or not range_header.strip():
        return RangeWindow.full(total_size)

    header = range_header.strip()
    match = _SINGLE_RANGE.match(header)
    if not match:
        if "," in header:
            reason = "multiple ranges are not supported"
        else:
            reason = "malformed range"
        raise RangeNotSatisfiableError(header, total_size, reason)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else total_size - 1

    if start >= total_size:
        raise RangeNotSatisfiableError(header, total_size, "range start beyond object size")
    if end < start:
        raise RangeNotSatisfiableError(header, total_size, "range end before start")

    # Lenient: an end past the object is clamped, not rejected
    end = min(end, total_size - 1)

    return RangeWindow(start=start, end=end, total_size=total_size, partial=True)
