# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Make sure Envoy always reports where its admin API is listening.

Envoy writes its bound admin address to the file named by
``--admin-address-path``. warden relies on that file for readiness and for
the shutdown hooks, so the flag is injected when the caller didn't pass one.
When the bootstrap configuration declares no admin endpoint at all, an
ephemeral one (``127.0.0.1:0``) is added so there is something to report.

Arguments after a bare ``--`` are private to warden: Envoy ignores them, and
so does the scanning here.
"""

from __future__ import annotations

import logging
import os
from typing import Callable

from warden.config import CONFIG_FLAGS, CONFIG_YAML_FLAG, find_admin_address
from warden.errors import ArgumentError, FlagNotFoundError

logger = logging.getLogger(__name__)

ADMIN_ADDRESS_PATH_FLAG = "--admin-address-path"
ADMIN_ADDRESS_FILE = "admin-address.txt"
RUN_DIR_FLAG = "--warden-run-dir"
ARGS_MARKER = "--"

EPHEMERAL_ADMIN_YAML = (
    "admin: {address: {socket_address: {address: '127.0.0.1', port_value: 0}}}"
)


def _split_private(args: list[str]) -> tuple[list[str], list[str]]:
    """Split ``args`` into Envoy's own flags and the ``--`` trailer."""
    if ARGS_MARKER in args:
        i = args.index(ARGS_MARKER)
        return list(args[:i]), list(args[i:])
    return list(args), []


def ensure_admin_address(
    args: list[str],
    run_dir: str,
    find_admin: Callable[[list[str]], str] = find_admin_address,
) -> tuple[str, list[str]]:
    """Return the admin address path and the arguments to launch Envoy with.

    Args:
        args: Envoy arguments as given by the user. Never modified.
        run_dir: Directory that receives the default admin address file.
        find_admin: Returns the admin ``host:port`` declared by ``args``.

    Returns:
        ``(admin_address_path, args_out)``. The path is empty when ``args``
        carry no configuration source, in which case ``args_out`` equals
        ``args``: Envoy will refuse to start and say why.

    Raises:
        ArgumentError: ``--admin-address-path`` has no value.
    """
    envoy_args, private = _split_private(args)

    admin_address_path = ""
    has_config = False
    for i, arg in enumerate(envoy_args):
        if arg == ADMIN_ADDRESS_PATH_FLAG:
            if i + 1 == len(envoy_args) or envoy_args[i + 1] == "":
                raise ArgumentError(
                    f'missing value to argument "{ADMIN_ADDRESS_PATH_FLAG}"'
                )
            admin_address_path = envoy_args[i + 1]
        elif arg in CONFIG_FLAGS:
            has_config = True

    if not has_config:
        return "", list(args)

    try:
        admin = find_admin(envoy_args)
    except Exception as exc:
        logger.warning(f"unable to inspect Envoy configuration for an admin address: {exc}")
    else:
        if not admin:
            logger.debug("no admin endpoint configured, adding an ephemeral one")
            envoy_args += [CONFIG_YAML_FLAG, EPHEMERAL_ADMIN_YAML]

    if not admin_address_path:
        # The run directory is mutable, unlike the working directory which may
        # be a source checkout.
        admin_address_path = os.path.join(run_dir, ADMIN_ADDRESS_FILE)
        envoy_args += [ADMIN_ADDRESS_PATH_FLAG, admin_address_path]

    return admin_address_path, envoy_args + private


def append_run_dir_flag(args: list[str], run_dir: str) -> list[str]:
    """Append the private ``-- --warden-run-dir <run_dir>`` trailer.

    Passing the run directory on Envoy's command line lets other tools find it
    from the process table, which works where environment variables don't.
    """
    out = list(args)
    if ARGS_MARKER not in out:
        out.append(ARGS_MARKER)
    out += [RUN_DIR_FLAG, run_dir]
    return out


def extract_flag_value(flag: str, cmdline: list[str]) -> str:
    """Return the value following ``flag`` in a live command line.

    The command line is re-split on whitespace so that ``sh -c "envoy ..."``
    wrappers still work.

    Raises:
        FlagNotFoundError: ``flag`` is absent or has no value.
    """
    parts = " ".join(cmdline).split()
    for i, arg in enumerate(parts):
        if arg == flag and i + 1 < len(parts):
            return parts[i + 1]
    raise FlagNotFoundError(f"{flag} not found in command line")
