# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Deadline-bound cancellation passed to startup and shutdown hooks."""

from __future__ import annotations

import math
import threading
import time
from datetime import datetime, timedelta

from warden.errors import DeadlineExceeded


class Deadline:
    """An absolute point in time that can also be cancelled early.

    Hooks receive a ``Deadline`` and are expected to bound their own work by
    it: pass :meth:`remaining` as a network timeout, check :meth:`expired`
    between steps, or sleep with :meth:`wait`.

    A child created with :meth:`child` never outlives its parent and is
    cancelled whenever the parent is.
    """

    def __init__(
        self, timeout: float | None = None, *, parent: Deadline | None = None
    ) -> None:
        now = time.monotonic()
        at = math.inf if timeout is None else now + timeout
        if parent is not None:
            at = min(at, parent.at)
        self.at = at
        self._cancelled = threading.Event()
        self._parent = parent

    @classmethod
    def never(cls) -> Deadline:
        """Return a deadline that only ends when cancelled."""
        return cls(None)

    def child(self, timeout: float | None = None) -> Deadline:
        return Deadline(timeout, parent=self)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def remaining(self) -> float:
        """Seconds left, or 0.0 once expired or cancelled."""
        if self.cancelled:
            return 0.0
        return max(0.0, self.at - time.monotonic())

    def timeout(self) -> float | None:
        """Remaining seconds as a socket timeout: None when there is no deadline."""
        if math.isinf(self.at) and not self.cancelled:
            return None
        # Sockets reject a zero timeout.
        return max(self.remaining(), 0.001)

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the deadline ended meanwhile."""
        end = time.monotonic() + seconds
        while True:
            if self.expired():
                return True
            left = min(end - time.monotonic(), self.remaining())
            if left <= 0:
                return self.expired()
            # Poll in short slices so parent cancellation is noticed.
            self._cancelled.wait(min(left, 0.05))

    def raise_if_expired(self) -> None:
        if self.cancelled:
            raise DeadlineExceeded("context canceled")
        if self.expired():
            raise DeadlineExceeded("context deadline exceeded")

    def wall_clock(self) -> datetime | None:
        """Approximate wall-clock time of the deadline, for log lines."""
        if math.isinf(self.at):
            return None
        return datetime.now() + timedelta(seconds=self.at - time.monotonic())

    def __repr__(self) -> str:
        when = self.wall_clock()
        label = when.isoformat(timespec="milliseconds") if when else "never"
        return f"Deadline({label}, cancelled={self.cancelled})"
