# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Process group control for POSIX systems without a parent-death signal.

macOS has no ``PR_SET_PDEATHSIG``, so nothing cleans up after warden if it
dies. :func:`force_kill` compensates by killing Envoy's descendants along
with Envoy itself.
"""

from __future__ import annotations

import logging
import os
import signal

import psutil

logger = logging.getLogger(__name__)

VARIANT = "group-kill"


def popen_kwargs() -> dict:
    return {"process_group": 0}


def interrupt(pid: int) -> None:
    try:
        os.kill(pid, signal.SIGINT)
    except ProcessLookupError:
        logger.debug(f"pid {pid} already exited before interrupt")


def force_kill(pid: int) -> None:
    try:
        proc = psutil.Process(pid)
        children = proc.children(recursive=True)
    except psutil.NoSuchProcess:
        return
    except psutil.Error as exc:
        # Listing fails for descendants owned by another user.
        logger.debug(f"unable to list children of pid {pid}: {exc}")
        children = []

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            continue

    try:
        proc.kill()
    except psutil.NoSuchProcess:
        logger.debug(f"pid {pid} already exited before kill")
