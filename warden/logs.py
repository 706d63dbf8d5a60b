# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Thread-safe output sinks that mirror Envoy's streams to several places."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Iterable


class TeeWriter:
    """Write every message to all destinations, in order, under one lock.

    Destinations opened through :meth:`open_log` are owned by the writer and
    closed by :meth:`close`; anything passed in (for example ``sys.stdout``)
    is only flushed.
    """

    def __init__(self, *destinations: IO[str] | None) -> None:
        self._lock = threading.Lock()
        self._destinations: list[IO[str]] = [d for d in destinations if d is not None]
        self._owned: list[IO[str]] = []

    @classmethod
    def open_log(cls, path: Path, *extra: IO[str] | None) -> TeeWriter:
        """Create a writer that appends to ``path`` and mirrors to ``extra``."""
        fh = path.open("a", encoding="utf-8")
        writer = cls(*extra, fh)
        writer._owned.append(fh)
        return writer

    @property
    def destinations(self) -> Iterable[IO[str]]:
        return tuple(self._destinations)

    def write(self, message: str) -> int:
        with self._lock:
            for dest in self._destinations:
                if getattr(dest, "closed", False):
                    continue
                dest.write(message)
                dest.flush()
        return len(message)

    def flush(self) -> None:
        with self._lock:
            for dest in self._destinations:
                if not getattr(dest, "closed", False):
                    dest.flush()

    def close(self) -> None:
        """Close the log files this writer opened."""
        with self._lock:
            for fh in self._owned:
                if not fh.closed:
                    fh.close()

    @property
    def closed(self) -> bool:
        return bool(self._owned) and all(fh.closed for fh in self._owned)
