# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Snapshot the Envoy admin API into the run directory before shutdown."""

from __future__ import annotations

import concurrent.futures
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable

import requests

from warden.deadline import Deadline
from warden.errors import AdminAddressError
from warden.startup import copy_url_to_file

if TYPE_CHECKING:
    from warden.runtime import Runtime

logger = logging.getLogger(__name__)

# Admin API path -> file name in the run directory.
ADMIN_API_PATHS = {
    "certs": "certs.json",
    "clusters": "clusters.txt",
    "config_dump": "config_dump.json",
    "contention": "contention.txt",
    "listeners": "listeners.txt",
    "memory": "memory.json",
    "server_info": "server_info.json",
    "stats?format=json": "stats.json",
    "runtime": "runtime.json",
}


class AdminDataCollection:
    """Shutdown hook that copies each admin endpoint to a file."""

    def __init__(self, get_admin_address: Callable[[], str], run_dir: str) -> None:
        self.get_admin_address = get_admin_address
        self.run_dir = Path(run_dir)

    def __call__(self, deadline: Deadline) -> None:
        try:
            admin_address = self.get_admin_address()
        except AdminAddressError as exc:
            raise AdminAddressError(
                f"unable to capture Envoy configuration and metrics: {exc}"
            ) from exc

        with requests.Session() as session:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=len(ADMIN_API_PATHS)
            ) as executor:
                future_map = {
                    executor.submit(
                        copy_url_to_file,
                        f"http://{admin_address}/{path}",
                        self.run_dir / filename,
                        deadline,
                        session,
                    ): path
                    for path, filename in ADMIN_API_PATHS.items()
                }
                first_error: Exception | None = None
                for future in concurrent.futures.as_completed(future_map):
                    try:
                        future.result()
                    except Exception as exc:
                        logger.debug(f"admin snapshot of /{future_map[future]} failed: {exc}")
                        if first_error is None:
                            first_error = exc

        if first_error is not None:
            raise first_error
        logger.info(f"saved {len(ADMIN_API_PATHS)} admin endpoints to {self.run_dir}")


def enable_admin_data_collection(runtime: Runtime) -> None:
    runtime.register_shutdown_hook(
        AdminDataCollection(runtime.get_admin_address, runtime.get_run_dir())
    )
