# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Built-in shutdown hooks that collect debugging data into the run directory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from warden.hooks.admin import enable_admin_data_collection
from warden.hooks.node import enable_node_collection

if TYPE_CHECKING:
    from warden.runtime import Runtime

logger = logging.getLogger(__name__)

ENABLE_HOOKS: list[Callable[[Runtime], None]] = [
    enable_admin_data_collection,
    enable_node_collection,
]


def enable_default_hooks(runtime: Runtime) -> None:
    """Register every built-in hook, logging the ones that can't be enabled."""
    for enable in ENABLE_HOOKS:
        try:
            enable(runtime)
        except Exception as exc:
            logger.warning(f"failed to enable shutdown hook {enable.__name__}: {exc}")
