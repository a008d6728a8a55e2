"""
Synchronization primitives for process lifecycle coordination.

OnceResult runs a function at most once and hands its outcome to every
caller. ExitSlot is a one-shot cell carrying a process's terminal result
from the reaper thread to any number of readers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from .deadline import Deadline

T = TypeVar("T")

# Granularity for noticing deadline cancellation while blocked on a slot
DEFAULT_POLL_INTERVAL = 0.05


class OnceResult(Generic[T]):
    """
    Execute a function exactly once and cache its outcome.

    The first caller runs the function while holding the lock; concurrent
    callers block until it finishes. Every caller then receives the same
    return value, or has the same exception re-raised.

    Example:
        once = OnceResult()
        once.do(lambda: expensive_shutdown())  # runs
        once.do(lambda: expensive_shutdown())  # returns cached result
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False
        self._result: T | None = None
        self._error: Exception | None = None

    @property
    def done(self) -> bool:
        """True once the guarded function has completed."""
        return self._done

    def do(self, fn: Callable[[], T]) -> T | None:
        """
        Run fn if no function has run yet, then return the recorded outcome.

        Args:
            fn: Function to run on first invocation

        Returns:
            The first function's return value

        Raises:
            Exception: The first function's exception, re-raised for every caller
        """
        with self._lock:
            if not self._done:
                try:
                    self._result = fn()
                except Exception as e:
                    self._error = e
                self._done = True

        if self._error is not None:
            raise self._error
        return self._result


class ExitSlot:
    """
    Single-slot, write-once delivery cell for a process exit result.

    put() never blocks and accepts exactly one value. Readers may wait on
    the slot with a deadline; once filled, the value stays cached so any
    later reader observes the same result instead of blocking.
    """

    def __init__(self) -> None:
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._value: Exception | None = None
        self._drained = False

    def put(self, value: Exception | None) -> None:
        """
        Deposit the terminal result.

        Raises:
            RuntimeError: If the slot was already filled
        """
        with self._lock:
            if self._ready.is_set():
                raise RuntimeError("exit slot already filled")
            self._value = value
            self._ready.set()

    def ready(self) -> bool:
        """True once a value has been deposited."""
        return self._ready.is_set()

    @property
    def drained(self) -> bool:
        """True once some caller has consumed the value."""
        return self._drained

    def wait(
        self,
        deadline: Deadline | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> bool:
        """
        Block until the slot is filled or the deadline fires.

        A filled slot wins over a deadline that fired at the same time.

        Args:
            deadline: Deadline to race against, or None to wait forever
            poll_interval: Max seconds between cancellation checks

        Returns:
            True if the slot is filled, False if the deadline fired first
        """
        if deadline is None:
            self._ready.wait()
            return True

        while not self._ready.is_set():
            if deadline.done():
                return False
            remaining = deadline.remaining()
            timeout = poll_interval if remaining is None else min(poll_interval, remaining)
            self._ready.wait(timeout)
        return True

    def drain(self) -> Exception | None:
        """
        Consume the deposited value.

        Must only be called after wait() returned True. The value remains
        cached, so draining more than once returns the same result.
        """
        if not self._ready.is_set():
            raise RuntimeError("exit slot is empty")
        self._drained = True
        return self._value
