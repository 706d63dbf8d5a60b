# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Capture host process and network state next to Envoy's own output.

Each collector is a separate shutdown hook writing one file under
``<run_dir>/node``. Collectors that the platform doesn't support write
nothing and report no error.
"""

from __future__ import annotations

import json
import logging
import socket
from pathlib import Path
from typing import TYPE_CHECKING, Any

import psutil

from warden.deadline import Deadline
from warden.errors import WardenError

if TYPE_CHECKING:
    from warden.runtime import Runtime

logger = logging.getLogger(__name__)

NODE_DIR = "node"
PS_FILE = "ps.txt"
NETWORK_INTERFACE_FILE = "network_interface.json"
CONNECTIONS_FILE = "connections.json"

PS_ATTRS = [
    "pid",
    "username",
    "status",
    "memory_info",
    "cpu_percent",
    "memory_percent",
    "cmdline",
]
PS_HEADER = ("PID", "USERNAME", "STATUS", "RSS", "VSZ", "PCPU", "PMEM", "ARGS")


def _write_json(data: Any, path: Path) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def format_process_table(rows: list[tuple]) -> str:
    """Render rows as whitespace-aligned columns, header first."""
    table = [PS_HEADER, *rows]
    # ARGS is last and left ragged.
    widths = [max(len(str(row[i])) for row in table) for i in range(len(PS_HEADER) - 1)]
    lines = []
    for row in table:
        cells = [str(cell).ljust(width + 5) for cell, width in zip(row, widths)]
        lines.append("".join(cells) + str(row[-1]))
    return "\n".join(lines) + "\n"


class NodeCollection:
    """Shutdown hooks that write ``ps``, interface and connection listings."""

    def __init__(self, node_dir: Path) -> None:
        self.node_dir = node_dir

    def ps(self, deadline: Deadline) -> None:
        rows = []
        # process_iter skips processes that exit while being listed, and
        # ad_value fills in fields that aren't readable.
        for proc in psutil.process_iter(PS_ATTRS, ad_value=None):
            deadline.raise_if_expired()
            info = proc.info
            mem = info.get("memory_info")
            rows.append(
                (
                    info["pid"],
                    info.get("username") or "",
                    info.get("status") or "",
                    mem.rss if mem else 0,
                    mem.vms if mem else 0,
                    f"{info.get('cpu_percent') or 0.0:.2f}",
                    f"{info.get('memory_percent') or 0.0:.2f}",
                    " ".join(info.get("cmdline") or []),
                )
            )

        if not rows:
            return

        (self.node_dir / PS_FILE).write_text(format_process_table(rows), encoding="utf-8")

    def network_interfaces(self, deadline: Deadline) -> None:
        try:
            interfaces = psutil.net_if_addrs()
        except psutil.AccessDenied:
            logger.debug("network interfaces are not available on this platform")
            return
        if not interfaces:
            return

        deadline.raise_if_expired()
        result = [
            {
                "name": name,
                "addrs": [
                    {
                        "family": getattr(addr.family, "name", str(addr.family)),
                        "address": addr.address,
                        "netmask": addr.netmask,
                        "broadcast": addr.broadcast,
                    }
                    for addr in addrs
                ],
            }
            for name, addrs in sorted(interfaces.items())
        ]
        _write_json(result, self.node_dir / NETWORK_INTERFACE_FILE)

    def active_connections(self, deadline: Deadline) -> None:
        try:
            connections = psutil.net_connections(kind="inet")
        except psutil.AccessDenied:
            # macOS needs root to list other users' sockets.
            logger.debug("active connections are not available without privileges")
            return
        if not connections:
            return

        deadline.raise_if_expired()
        result = []
        for conn in connections:
            result.append(
                {
                    "fd": conn.fd,
                    "pid": conn.pid,
                    "family": socket.AddressFamily(conn.family).name,
                    "type": socket.SocketKind(conn.type).name,
                    "status": conn.status,
                    "localaddr": _addr(conn.laddr),
                    "remoteaddr": _addr(conn.raddr),
                }
            )
        _write_json(result, self.node_dir / CONNECTIONS_FILE)


def _addr(addr: Any) -> dict | None:
    if not addr:
        return None
    return {"ip": addr.ip, "port": addr.port}


def enable_node_collection(runtime: Runtime) -> None:
    node_dir = Path(runtime.get_run_dir()) / NODE_DIR
    try:
        node_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WardenError(
            f"unable to create directory {node_dir}, so node data will not be captured: {exc}"
        ) from exc

    collection = NodeCollection(node_dir)
    runtime.register_shutdown_hook(collection.ps)
    runtime.register_shutdown_hook(collection.network_interfaces)
    runtime.register_shutdown_hook(collection.active_connections)
