# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""warden runs Envoy under supervision.

Typical use::

    from warden import RunOptions, run

    opts = RunOptions.from_env()
    run(["-c", "envoy.yaml"], opts)

See :mod:`warden.runtime` for the lifecycle of a run.
"""

from warden.deadline import Deadline
from warden.errors import (
    AdminAddressError,
    AdminHTTPError,
    ArchiveError,
    ArgumentError,
    DeadlineExceeded,
    EnvoyExitError,
    FlagNotFoundError,
    LaunchError,
    WardenError,
)
from warden.options import RunOptions, new_run_dir
from warden.run import run
from warden.runtime import READY_LINE, Runtime

__all__ = [
    "READY_LINE",
    "AdminAddressError",
    "AdminHTTPError",
    "ArchiveError",
    "ArgumentError",
    "Deadline",
    "DeadlineExceeded",
    "EnvoyExitError",
    "FlagNotFoundError",
    "LaunchError",
    "RunOptions",
    "Runtime",
    "WardenError",
    "new_run_dir",
    "run",
]
