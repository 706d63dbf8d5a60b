# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Exception types raised by warden.

Only launch, exit, archive and discovery failures reach callers. Hook
failures are logged at the thread that ran the hook and never raised.
"""

from __future__ import annotations


class WardenError(Exception):
    """Base class for errors surfaced to warden callers."""


class ArgumentError(WardenError):
    """Raised when Envoy arguments are malformed, before anything is spawned."""


class LaunchError(WardenError):
    """Raised when the Envoy binary cannot be started."""

    def __init__(self, message: str, *, envoy_path: str, run_dir: str) -> None:
        self.envoy_path = envoy_path
        self.run_dir = run_dir
        super().__init__(message)


class EnvoyExitError(WardenError):
    """Raised when Envoy exits with a non-zero status on its own."""

    def __init__(self, returncode: int, *, run_dir: str) -> None:
        self.returncode = returncode
        self.run_dir = run_dir
        super().__init__(f"envoy exited with status: {returncode}")


class ArchiveError(WardenError):
    """Raised when the run directory could not be archived."""


class AdminAddressError(WardenError):
    """Raised when the admin address is not yet known or is malformed."""


class AdminHTTPError(WardenError):
    """Raised when the Envoy admin API answers with a non-200 status."""

    def __init__(self, message: str, *, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class FlagNotFoundError(WardenError):
    """Raised when a flag is absent from a live command line."""


class DeadlineExceeded(WardenError, TimeoutError):
    """Raised by :meth:`Deadline.raise_if_expired`."""
