"""
Record timestamps.

Timestamps are stored as ISO-8601 UTC strings with microsecond precision so
that they compare correctly as plain strings in either backend.
"""
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional


class MonotonicClock:
    """
    Wall clock that never hands out the same instant twice.

    Two writes landing in the same microsecond still get strictly increasing
    ``updatedAt`` values.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current

    def now_iso(self) -> str:
        return to_iso(self.now())


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_iso(value) -> Optional[datetime]:
    """Best-effort parse of a stored timestamp; ``None`` when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by older clients
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

clock = MonotonicClock()
