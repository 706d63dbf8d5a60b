# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Windows process group control via CTRL_BREAK events.

Windows has no POSIX process groups or signals. Envoy is started in a new
process group so a Ctrl-C aimed at warden does not also reach Envoy before
the shutdown hooks have run; warden then delivers the interrupt itself.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess

import psutil

logger = logging.getLogger(__name__)

VARIANT = "break-group"


def popen_kwargs() -> dict:
    return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}


def interrupt(pid: int) -> None:
    if not psutil.pid_exists(pid):
        logger.debug(f"pid {pid} already exited before interrupt")
        return
    try:
        os.kill(pid, signal.CTRL_BREAK_EVENT)
    except OSError as exc:
        if psutil.pid_exists(pid):
            raise OSError(exc.errno, f"couldn't interrupt pid({pid}): {exc}") from exc


def force_kill(pid: int) -> None:
    try:
        proc = psutil.Process(pid)
        # Give a process that is already exiting a moment before terminating it.
        proc.wait(timeout=0.1)
    except psutil.NoSuchProcess:
        return
    except psutil.TimeoutExpired:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            logger.debug(f"pid {pid} already exited before kill")
