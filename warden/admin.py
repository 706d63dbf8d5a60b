# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Find a running Envoy and talk to its admin API.

These helpers serve tools that sit next to a warden run, such as test
harnesses, and need to wait until Envoy is actually serving. Both pollers
retry on a fixed interval until the caller's :class:`Deadline` ends, then
raise with the last error they saw rather than a bare timeout.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import psutil
import requests

from warden.admin_address import ADMIN_ADDRESS_PATH_FLAG, RUN_DIR_FLAG, extract_flag_value
from warden.config import Listener, parse_listeners
from warden.deadline import Deadline
from warden.errors import AdminHTTPError, DeadlineExceeded, WardenError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05
PID_FILE = "envoy.pid"


def parse_admin_port(address: str) -> int:
    """Return the port of a ``host:port`` admin address.

    Raises:
        ValueError: ``address`` is not ``host:port`` with a numeric port.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"failed to parse Envoy's admin address: {address!r}")
    try:
        return int(port)
    except ValueError as exc:
        raise ValueError(f"failed to parse Envoy's admin port: {address!r}") from exc


def _timeout(what: str, last_error: Exception | None) -> DeadlineExceeded:
    if last_error is None:
        return DeadlineExceeded(f"timeout waiting for {what}")
    return DeadlineExceeded(f"timeout waiting for {what}: {last_error}")


def poll_address_file(path: str | Path, deadline: Deadline) -> int:
    """Wait for Envoy to write its admin address to ``path``; return the port.

    A missing or empty file is retried. Content that isn't ``host:port`` is
    returned as an error immediately.

    Raises:
        ValueError: The file holds a malformed address.
        DeadlineExceeded: ``deadline`` ended first. Chained from the last
            read error.
    """
    path = Path(path)
    last_error: Exception | None = None
    while True:
        try:
            address = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            last_error = exc
        else:
            if address:
                return parse_admin_port(address)
            last_error = WardenError(f"envoy admin address file {path} was empty")

        if deadline.wait(POLL_INTERVAL):
            raise _timeout("Envoy admin address file", last_error) from last_error


def poll_child_and_address_path(parent_pid: int, deadline: Deadline) -> tuple[int, str]:
    """Wait until ``parent_pid`` has exactly one child; return its pid and
    the admin address path from its command line.

    Raises:
        FlagNotFoundError: The child was started without
            ``--admin-address-path``.
        DeadlineExceeded: ``deadline`` ended first.
    """
    child, cmdline = _poll_child(parent_pid, deadline)
    return child.pid, extract_flag_value(ADMIN_ADDRESS_PATH_FLAG, cmdline)


def _poll_child(parent_pid: int, deadline: Deadline) -> tuple[psutil.Process, list[str]]:
    try:
        parent = psutil.Process(parent_pid)
    except psutil.NoSuchProcess as exc:
        raise WardenError(f"failed to get process {parent_pid}: {exc}") from exc

    last_error: Exception | None = None
    while True:
        try:
            children = parent.children()
        except psutil.Error as exc:
            last_error = exc
        else:
            if len(children) == 1:
                child = children[0]
                try:
                    return child, child.cmdline()
                except psutil.Error as exc:
                    last_error = exc
            elif children:
                last_error = WardenError(
                    f"expected one Envoy process, found {len(children)}"
                )
            else:
                last_error = WardenError("no Envoy process found")

        if deadline.wait(POLL_INTERVAL):
            raise _timeout("Envoy process", last_error) from last_error


class AdminClient:
    """Client for the admin API of one Envoy process.

    Args:
        port: Admin port on ``127.0.0.1``.
        pid: Envoy's process ID.
        run_dir: The warden run directory of this Envoy.
        session: Optional ``requests.Session`` to reuse connections.
        listeners: Static listeners from the bootstrap configuration, used
            when the admin API can't list them.
    """

    def __init__(
        self,
        port: int,
        pid: int,
        run_dir: str,
        session: requests.Session | None = None,
        listeners: list[Listener] | None = None,
    ) -> None:
        self.port = port
        self.pid = pid
        self.run_dir = run_dir
        self.session = session or requests.Session()
        self.listeners = {listener.name: listener for listener in listeners or []}

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def get(self, path: str, timeout: float | None = None) -> bytes:
        """GET ``path`` and return the raw body.

        Raises:
            AdminHTTPError: The status code wasn't 200.
            requests.RequestException: The request failed.
        """
        url = self.url(path)
        response = self.session.get(url, timeout=timeout)
        if response.status_code != 200:
            raise AdminHTTPError(
                f"error Envoy admin URL {url}: status_code={response.status_code},"
                f"body:{response.text}",
                status_code=response.status_code,
                url=url,
            )
        return response.content

    def is_ready(self, timeout: float | None = None) -> None:
        """Raise unless ``/ready`` answers ``LIVE``."""
        body = self.get("/ready", timeout=timeout).decode("utf-8", "replace")
        state = body.strip().lower()
        if state != "live":
            raise WardenError(f"unexpected /ready response body: {state!r}")

    def await_ready(self, deadline: Deadline, interval: float = POLL_INTERVAL) -> None:
        """Poll :meth:`is_ready` until it succeeds or ``deadline`` ends.

        Raises:
            WardenError: The last readiness failure, once ``deadline`` ended.
            requests.RequestException: Likewise, for a transport failure.
        """
        last_error: Exception | None = None
        while True:
            try:
                self.is_ready(timeout=deadline.timeout())
                return
            except (WardenError, requests.RequestException) as exc:
                last_error = exc
            if deadline.wait(interval):
                raise last_error

    def listener_port(self, name: str, timeout: float | None = None) -> int:
        """Return the bound port of the listener called ``name``.

        Raises:
            WardenError: No listener has that name.
        """
        try:
            body = self.get("/listeners?format=json", timeout=timeout)
        except (AdminHTTPError, requests.RequestException):
            static = self.listeners.get(name)
            port = parse_admin_port(static.address) if static else 0
            if not port:
                raise
            logger.debug(f"admin API unavailable, using static port {port} for {name}")
            return port

        try:
            statuses = json.loads(body).get("listener_statuses") or []
        except (ValueError, AttributeError) as exc:
            raise WardenError(f"failed to parse Envoy listeners: {exc}") from exc

        for status in statuses:
            if status.get("name") == name:
                sa = (status.get("local_address") or {}).get("socket_address") or {}
                port = int(sa.get("port_value") or 0)
                if port:
                    return port
        raise WardenError(f"listener {name!r} not found")

    def close(self) -> None:
        self.session.close()

    def __repr__(self) -> str:
        return f"AdminClient(port={self.port}, pid={self.pid}, run_dir={self.run_dir!r})"


def read_pid_file(run_dir: str) -> int:
    path = os.path.join(run_dir, PID_FILE)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise WardenError(f"failed to read {PID_FILE}: {exc}") from exc
    try:
        return int(text.strip())
    except ValueError as exc:
        raise WardenError(f"failed to parse PID from {PID_FILE}: {text!r}") from exc


def new_admin_client(
    run_dir: str,
    admin_address_path: str,
    deadline: Deadline,
    listeners: list[Listener] | None = None,
) -> AdminClient:
    """Build a client from ``envoy.pid`` and the admin address file.

    Blocks until Envoy has written its admin address or ``deadline`` ends.
    """
    pid = read_pid_file(run_dir)
    port = poll_address_file(admin_address_path, deadline)
    return AdminClient(port, pid, run_dir, listeners=listeners)


def admin_client_for_parent(parent_pid: int, deadline: Deadline) -> AdminClient:
    """Build a client for the Envoy that warden process ``parent_pid`` runs.

    The run directory and admin address path come from Envoy's own command
    line, so no environment or side channel is needed.
    """
    child, cmdline = _poll_child(parent_pid, deadline)
    run_dir = extract_flag_value(RUN_DIR_FLAG, cmdline)
    admin_address_path = extract_flag_value(ADMIN_ADDRESS_PATH_FLAG, cmdline)

    try:
        listeners = parse_listeners(cmdline[1:])
    except Exception as exc:
        logger.debug(f"unable to read static listeners of pid {child.pid}: {exc}")
        listeners = []

    port = poll_address_file(admin_address_path, deadline)
    return AdminClient(port, child.pid, run_dir, listeners=listeners)


__all__ = [
    "POLL_INTERVAL",
    "AdminClient",
    "admin_client_for_parent",
    "new_admin_client",
    "parse_admin_port",
    "poll_address_file",
    "poll_child_and_address_path",
]
