# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Read just enough of an Envoy bootstrap configuration to find endpoints.

Envoy accepts its bootstrap from ``-c``/``--config-path`` files and from
``--config-yaml`` strings, merging them in order. Only the admin endpoint and
the static listeners are of interest here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_PATH_FLAGS = ("-c", "--config-path")
CONFIG_YAML_FLAG = "--config-yaml"
CONFIG_FLAGS = (*CONFIG_PATH_FLAGS, CONFIG_YAML_FLAG)


@dataclass(frozen=True)
class Listener:
    """A statically configured listener."""

    name: str
    address: str  # host:port
    protocol: str = ""


@dataclass
class Bootstrap:
    admin: str = ""  # host:port, empty when no admin endpoint is declared
    listeners: dict[str, Listener] = field(default_factory=dict)


def _iter_config_sources(args: list[str]):
    """Yield the YAML text of every configuration source in ``args``."""
    i = 0
    while i < len(args):
        flag = args[i]
        if flag == "--":
            return
        if flag not in CONFIG_FLAGS:
            i += 1
            continue
        if i + 1 >= len(args):
            raise ValueError(f"missing value for {flag}")
        value = args[i + 1]
        i += 2
        if flag == CONFIG_YAML_FLAG:
            yield value
            continue
        try:
            yield Path(value).read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"failed to read config file {value}: {exc}") from exc


def _format_addr(socket_address: dict[str, Any]) -> str:
    return f"{socket_address.get('address', '')}:{socket_address.get('port_value', 0)}"


def _socket_address(node: Any) -> dict[str, Any]:
    if not isinstance(node, dict):
        return {}
    address = node.get("address")
    if not isinstance(address, dict):
        return {}
    socket_address = address.get("socket_address")
    return socket_address if isinstance(socket_address, dict) else {}


def parse_bootstrap(args: list[str]) -> Bootstrap:
    """Merge the admin endpoint and static listeners of all config sources.

    Later sources win, as they do in Envoy.

    Raises:
        ValueError: If a flag has no value, a file can't be read, or the YAML
            is malformed.
    """
    result = Bootstrap()
    for text in _iter_config_sources(args):
        try:
            doc = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"failed to parse YAML: {exc}") from exc
        if not isinstance(doc, dict):
            raise ValueError(f"failed to parse YAML: expected a mapping, got {type(doc).__name__}")

        sa = _socket_address(doc.get("admin"))
        if sa.get("address") and int(sa.get("port_value", 0)) >= 0:
            result.admin = _format_addr(sa)

        static = doc.get("static_resources") or {}
        for item in static.get("listeners") or []:
            if not isinstance(item, dict):
                continue
            sa = _socket_address(item)
            listener = Listener(
                name=str(item.get("name", "")),
                address=_format_addr(sa),
                protocol=str(sa.get("protocol", "")),
            )
            result.listeners[listener.name] = listener
    return result


def find_admin_address(args: list[str]) -> str:
    """Return the admin ``host:port`` declared by ``args``, or ``""``."""
    return parse_bootstrap(args).admin


def parse_listeners(args: list[str]) -> list[Listener]:
    return list(parse_bootstrap(args).listeners.values())
