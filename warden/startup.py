# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""The hook that runs once Envoy logs that it is ready.

By default it saves Envoy's configuration snapshot (``config_dump.json``)
into the run directory. A caller-supplied hook replaces the default entirely.
Whatever the hook does, it can't fail the run: errors and unexpected
exceptions are logged and dropped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import requests

from warden.deadline import Deadline
from warden.errors import AdminAddressError, AdminHTTPError
from warden.isolation import run_isolated

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 5.0
CONFIG_DUMP_FILE = "config_dump.json"

# (deadline, run_dir, admin_address)
StartupHook = Callable[[Deadline, str, str], None]


class SafeStartupHook:
    """Wrap a startup hook with a timeout and exception isolation."""

    def __init__(self, delegate: StartupHook, timeout: float = STARTUP_TIMEOUT) -> None:
        self.delegate = delegate
        self.timeout = timeout

    def __call__(self, deadline: Deadline, run_dir: str, admin_address: str) -> None:
        if self.timeout > 0:
            deadline = deadline.child(self.timeout)
        run_isolated("startup hook", self.delegate, deadline, run_dir, admin_address)


def copy_url_to_file(
    url: str,
    path: Path,
    deadline: Deadline,
    session: requests.Session | None = None,
) -> None:
    """GET ``url`` and write the body to ``path``.

    Raises:
        AdminHTTPError: The response status wasn't 200.
        DeadlineExceeded: ``deadline`` ended before the request was sent.
        requests.RequestException: The request failed.
    """
    deadline.raise_if_expired()
    http = session or requests
    response = http.get(url, timeout=deadline.timeout())

    if response.status_code != 200:
        raise AdminHTTPError(
            f"received {response.status_code} from {url}",
            status_code=response.status_code,
            url=url,
        )
    try:
        path.write_bytes(response.content)
    except OSError as exc:
        raise OSError(exc.errno, f"could not write response body of {url}: {exc}") from exc


def collect_config_dump(deadline: Deadline, run_dir: str, admin_address: str) -> None:
    """Save ``/config_dump?include_eds`` from the admin API.

    ``include_eds`` adds endpoint data, so the snapshot covers listeners,
    routes, clusters, endpoints and secrets.
    """
    if not admin_address:
        raise AdminAddressError("admin address not yet known")
    url = f"http://{admin_address}/config_dump?include_eds"
    copy_url_to_file(url, Path(run_dir) / CONFIG_DUMP_FILE, deadline)
    logger.info(f"Saved {CONFIG_DUMP_FILE} from {admin_address}")
