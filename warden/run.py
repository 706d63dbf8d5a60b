# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Run Envoy with the default logging and debug hooks."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import IO

from warden.errors import WardenError
from warden.hooks import enable_default_hooks
from warden.logs import TeeWriter
from warden.options import RunOptions
from warden.runtime import Runtime

logger = logging.getLogger(__name__)

STDOUT_LOG = "stdout.log"
STDERR_LOG = "stderr.log"


def run(
    args: list[str],
    opts: RunOptions,
    stop: threading.Event | None = None,
    out: IO[str] | None = None,
    err: IO[str] | None = None,
    enable_hooks: bool = True,
) -> Runtime:
    """Run Envoy until it exits or ``stop`` is set.

    Envoy's output goes to ``out``/``err`` (the console by default) and to
    ``stdout.log``/``stderr.log`` in the run directory. Unless
    ``enable_hooks`` is false, the admin API and node state are captured
    into the run directory before Envoy is stopped.

    Returns:
        The finished :class:`Runtime`, for inspection.

    Raises:
        WardenError: See :meth:`Runtime.run`.
    """
    run_dir = Path(opts.run_dir)
    stdout = stderr = None
    try:
        stdout = TeeWriter.open_log(run_dir / STDOUT_LOG, out if out is not None else sys.stdout)
        stderr = TeeWriter.open_log(run_dir / STDERR_LOG, err if err is not None else sys.stderr)
    except OSError as exc:
        if stdout is not None:
            stdout.close()
        raise WardenError(f"unable to open log files in {run_dir}: {exc}") from exc

    runtime = Runtime(opts, out=stdout, err=stderr)
    if enable_hooks:
        enable_default_hooks(runtime)
    try:
        runtime.run(args, stop=stop)
    finally:
        stdout.close()
        stderr.close()
    return runtime
