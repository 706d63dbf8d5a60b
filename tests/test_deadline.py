"""Tests for warden.deadline."""

import threading
import time

import pytest

from warden.deadline import Deadline
from warden.errors import DeadlineExceeded


def test_never_has_no_timeout():
    deadline = Deadline.never()
    assert not deadline.expired()
    assert deadline.timeout() is None
    assert deadline.wall_clock() is None


def test_expires():
    deadline = Deadline(0.05)
    assert not deadline.expired()
    time.sleep(0.1)
    assert deadline.expired()
    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceeded, match="context deadline exceeded"):
        deadline.raise_if_expired()


def test_cancel():
    deadline = Deadline(10)
    deadline.cancel()
    assert deadline.cancelled
    assert deadline.expired()
    with pytest.raises(DeadlineExceeded, match="context canceled"):
        deadline.raise_if_expired()


def test_child_never_outlives_parent():
    parent = Deadline(1)
    child = parent.child(60)
    assert child.at == parent.at
    assert parent.child(0.5).at < parent.at


def test_child_cancelled_with_parent():
    parent = Deadline.never()
    child = parent.child(60)
    parent.cancel()
    assert child.cancelled
    assert child.timeout() == pytest.approx(0.001)


def test_wait_returns_early_on_cancel():
    deadline = Deadline.never()
    threading.Timer(0.05, deadline.cancel).start()
    start = time.monotonic()
    assert deadline.wait(5) is True
    assert time.monotonic() - start < 2


def test_wait_times_out_without_expiring():
    deadline = Deadline(10)
    assert deadline.wait(0.01) is False


def test_timeout_is_never_zero():
    deadline = Deadline(0)
    assert deadline.timeout() > 0
