"""Injectable clock so services never call ``datetime.now()`` directly.

``recorded_at`` is the ledger's same-day tie-break, so tests need to control
it exactly; ``DeterministicClock`` hands out predictable timestamps.
"""
import threading
from datetime import datetime, timedelta, timezone

# Last timestamp handed out by any SystemClock in this process
_last_now = None
_now_lock = threading.Lock()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SystemClock:
    """Returns the current UTC time (naive), never earlier than a previous call.

    UTC has no daylight-saving jumps, and the floor on the last value handed
    out also covers the system clock being stepped back.
    """

    def now(self) -> datetime:
        global _last_now
        with _now_lock:
            value = _utc_now()
            if _last_now is not None and value < _last_now:
                value = _last_now
            _last_now = value
            return value


class DeterministicClock:
    """Test clock that advances by a fixed step on every call.

    Args:
        start: First timestamp returned.
        step: Increment applied after each ``now()`` call.
    """

    def __init__(self, start: datetime = None, step: timedelta = timedelta(seconds=1)):
        self._current = start or datetime(2025, 1, 1, 8, 0, 0)
        self._step = step

    def now(self) -> datetime:
        value = self._current
        self._current = self._current + self._step
        return value

    def set(self, value: datetime):
        self._current = value
