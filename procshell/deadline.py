"""
Cancellable deadlines for blocking process operations.

A Deadline combines an optional absolute expiry (monotonic clock) with an
explicit cancel flag. Every blocking call in procshell accepts a Deadline,
a number of seconds, or None for "no deadline".

Example:
    d = Deadline.after(0.5)
    proc.stop(d)

    # Cancel from another thread
    d = Deadline()
    threading.Timer(1.0, d.cancel).start()
    proc.wait(d)
"""

from __future__ import annotations

import threading
import time


class Deadline:
    """
    Deadline with optional expiry and explicit cancellation.

    Thread-safe: cancel() may be called from any thread, and done() may be
    polled concurrently by any number of waiters.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """
        Initialize deadline.

        Args:
            timeout: Seconds from now until expiry, or None to never expire
                on its own (it can still be cancelled)
        """
        self._expires_at: float | None = None
        if timeout is not None:
            self._expires_at = time.monotonic() + max(float(timeout), 0.0)
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, secs: float) -> Deadline:
        """Create a deadline expiring `secs` seconds from now."""
        return cls(secs)

    @classmethod
    def never(cls) -> Deadline:
        """Create a deadline that only fires when cancelled."""
        return cls(None)

    def cancel(self) -> None:
        """Fire the deadline immediately."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        """True once the expiry time has passed."""
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def done(self) -> bool:
        """True if the deadline was cancelled or has expired."""
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left until expiry (never negative), or None if unbounded."""
        if self._expires_at is None:
            return None
        return max(self._expires_at - time.monotonic(), 0.0)

    def __repr__(self) -> str:
        remaining = self.remaining()
        left = "inf" if remaining is None else f"{remaining:.3f}s"
        return f"Deadline(remaining={left}, cancelled={self.cancelled})"


def as_deadline(value: Deadline | float | None) -> Deadline:
    """
    Normalize a deadline argument.

    Args:
        value: Existing Deadline (returned as-is), seconds from now, or None

    Returns:
        Deadline instance
    """
    if isinstance(value, Deadline):
        return value
    if value is None:
        return Deadline.never()
    return Deadline.after(value)
