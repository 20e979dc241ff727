"""System clock adapter - Implements Clock protocol."""

import threading
from datetime import datetime, timedelta, timezone


class SystemClock:
    """
    UTC clock with microsecond precision.

    set() freezes the clock at a given instant until reset() is called,
    which lets tests drive token expiry deterministically.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fixed: datetime | None = None

    def now(self) -> datetime:
        with self._lock:
            fixed = self._fixed
        if fixed is not None:
            return fixed
        return datetime.now(timezone.utc)

    def set(self, value: datetime) -> None:
        """Freeze the clock at ``value`` (naive values are taken as UTC)."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        with self._lock:
            self._fixed = value.astimezone(timezone.utc)

    def advance(self, **delta: float) -> datetime:
        """Move a frozen clock forward, e.g. advance(hours=25)."""
        with self._lock:
            if self._fixed is None:
                raise RuntimeError("SystemClock.advance() requires a frozen clock")
            self._fixed = self._fixed + timedelta(**delta)
            return self._fixed

    def reset(self) -> None:
        """Resume real time."""
        with self._lock:
            self._fixed = None
