# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Run third-party callbacks so that nothing they raise escapes."""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests

from warden.errors import WardenError

logger = logging.getLogger(__name__)

# Failures a hook is expected to report. Anything else is a bug in the hook
# and is logged with its traceback.
EXPECTED_ERRORS = (WardenError, OSError, TimeoutError, requests.RequestException)


def run_isolated(name: str, fn: Callable[..., Any], *args: Any) -> Exception | None:
    """Call ``fn(*args)``, log any exception it raises and return it.

    ``name`` describes ``fn`` in the log, for example ``"startup hook"``.
    """
    try:
        fn(*args)
    except EXPECTED_ERRORS as exc:
        logger.error(f"{name} failed: {exc}")
        return exc
    except Exception as exc:
        logger.exception(f"{name} panicked: {exc!r}")
        return exc
    return None
