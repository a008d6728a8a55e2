"""Tests for Deadline."""

import threading
import time

import pytest

from procshell.deadline import Deadline, as_deadline


@pytest.mark.unit
class TestDeadline:
    """Tests for Deadline expiry and cancellation."""

    def test_never_is_not_done(self):
        """Test unbounded deadline is not done until cancelled."""
        d = Deadline.never()
        assert d.done() is False
        assert d.remaining() is None
        assert d.expired is False

    def test_cancel(self):
        """Test cancel fires the deadline."""
        d = Deadline.never()
        d.cancel()
        assert d.cancelled is True
        assert d.done() is True

    def test_after_expires(self):
        """Test deadline expires after its timeout."""
        d = Deadline.after(0.01)
        time.sleep(0.03)
        assert d.expired is True
        assert d.done() is True
        assert d.remaining() == 0.0

    def test_remaining_counts_down(self):
        """Test remaining is bounded by the timeout."""
        d = Deadline(10.0)
        remaining = d.remaining()
        assert remaining is not None
        assert 9.0 < remaining <= 10.0

    def test_negative_timeout_is_already_expired(self):
        """Test negative timeouts are clamped to zero."""
        assert Deadline(-1.0).done() is True

    def test_cancel_from_other_thread(self):
        """Test cancel is visible across threads."""
        d = Deadline.never()
        t = threading.Thread(target=d.cancel)
        t.start()
        t.join()
        assert d.done() is True

    def test_repr(self):
        """Test repr shows remaining time and cancel state."""
        assert "inf" in repr(Deadline.never())
        assert "cancelled=False" in repr(Deadline(1.0))


@pytest.mark.unit
class TestAsDeadline:
    """Tests for deadline argument normalization."""

    def test_none(self):
        """Test None becomes an unbounded deadline."""
        assert as_deadline(None).remaining() is None

    def test_seconds(self):
        """Test numbers become relative deadlines."""
        remaining = as_deadline(5).remaining()
        assert remaining is not None and remaining <= 5

    def test_deadline_passthrough(self):
        """Test existing deadlines are returned as-is."""
        d = Deadline(1.0)
        assert as_deadline(d) is d
