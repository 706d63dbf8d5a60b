# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Linux process group control: own group plus parent-death SIGKILL."""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import signal

logger = logging.getLogger(__name__)

VARIANT = "pdeathsig"

# From <linux/prctl.h>
PR_SET_PDEATHSIG = 1

_libc = ctypes.CDLL(ctypes.util.find_library("c") or "libc.so.6", use_errno=True)


def _set_group_and_deathsig() -> None:
    # Runs in the forked child before exec. The death signal fires when the
    # thread that forked exits, so warden spawns Envoy from its run thread.
    os.setpgid(0, 0)
    if _libc.prctl(PR_SET_PDEATHSIG, signal.SIGKILL, 0, 0, 0) != 0:
        errno = ctypes.get_errno()
        raise OSError(errno, os.strerror(errno))


def popen_kwargs() -> dict:
    return {"preexec_fn": _set_group_and_deathsig}


def interrupt(pid: int) -> None:
    """Send SIGINT to Envoy directly; Envoy drains and exits on it."""
    try:
        os.kill(pid, signal.SIGINT)
    except ProcessLookupError:
        logger.debug(f"pid {pid} already exited before interrupt")


def force_kill(pid: int) -> None:
    """Send SIGKILL to Envoy, treating an exited process as success."""
    try:
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug(f"pid {pid} already exited before kill")
