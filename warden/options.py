# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Run options and the environment variables that provide their defaults.

``WARDEN_HOME``
    Root for warden state; runs go under ``$WARDEN_HOME/runs``. Defaults to
    ``~/.warden``.
``WARDEN_ENVOY_PATH``
    Envoy binary to run. Defaults to ``envoy`` found on ``PATH``.

Both may be set in a ``.env`` file, which the CLI loads with python-dotenv.
"""

from __future__ import annotations

import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from warden.errors import WardenError
from warden.startup import STARTUP_TIMEOUT, StartupHook

HOME_ENV = "WARDEN_HOME"
ENVOY_PATH_ENV = "WARDEN_ENVOY_PATH"


def default_home() -> Path:
    home = os.getenv(HOME_ENV)
    if home:
        return Path(home).expanduser()
    return Path.home() / ".warden"


def default_envoy_path() -> str:
    """Return ``$WARDEN_ENVOY_PATH`` or the ``envoy`` found on ``PATH``.

    Falls back to the bare name so the launch error names what was missing.
    """
    configured = os.getenv(ENVOY_PATH_ENV)
    if configured:
        return configured
    return shutil.which("envoy") or "envoy"


def new_run_dir(home: Path | None = None) -> str:
    """Create ``<home>/runs/<time_ns>`` and return its path.

    Raises:
        WardenError: The directory couldn't be created.
    """
    runs = (home or default_home()) / "runs"
    run_dir = runs / str(time.time_ns())
    try:
        run_dir.mkdir(parents=True)
    except OSError as exc:
        raise WardenError(f"unable to create working directory {run_dir}: {exc}") from exc
    return str(run_dir)


@dataclass
class RunOptions:
    """How to run one Envoy process.

    ``run_dir`` must exist before the run starts; :func:`new_run_dir` makes
    one. ``startup_hook`` replaces the default config dump when set, and a
    ``startup_timeout`` of zero or less leaves the hook unbounded.
    """

    envoy_path: str
    run_dir: str
    startup_hook: StartupHook | None = None
    startup_timeout: float = STARTUP_TIMEOUT
    dont_archive_run_dir: bool = False

    @classmethod
    def from_env(cls, **overrides) -> RunOptions:
        """Build options from the environment, creating a fresh run directory."""
        if not overrides.get("envoy_path"):
            overrides["envoy_path"] = default_envoy_path()
        if not overrides.get("run_dir"):
            overrides["run_dir"] = new_run_dir()
        else:
            run_dir = Path(overrides["run_dir"])
            try:
                run_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise WardenError(
                    f"unable to create working directory {run_dir}: {exc}"
                ) from exc
        return cls(**overrides)
