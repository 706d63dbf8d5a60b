# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Run shutdown hooks in parallel under one shared deadline."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable

from warden.deadline import Deadline
from warden.isolation import run_isolated

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0
# Extra time granted to hooks that overrun the deadline before they are
# abandoned.
HOOK_GRACE = 2.0

ShutdownHook = Callable[[Deadline], None]


def _hook_name(hook: ShutdownHook) -> str:
    return getattr(hook, "__qualname__", None) or repr(hook)


def run_shutdown_hooks(
    hooks: Iterable[ShutdownHook],
    timeout: float = SHUTDOWN_TIMEOUT,
    join_timeout: float | None = None,
    report: Callable[[str], None] | None = None,
) -> list[Exception]:
    """Invoke every hook concurrently and wait for them to finish.

    Each hook gets the same :class:`Deadline` and runs in its own daemon
    thread. A hook that raises is logged and does not affect the others.

    Args:
        hooks: Callables taking the shared deadline.
        timeout: Seconds until the shared deadline ends.
        join_timeout: Upper bound on the total wait. Defaults to
            ``timeout + HOOK_GRACE``. Hooks still running afterwards are
            abandoned.
        report: Receives the user-facing progress lines, for example to
            print them next to Envoy's output.

    Returns:
        The exceptions raised by hooks, in hook order.
    """
    hooks = list(hooks)
    if join_timeout is None:
        join_timeout = timeout + HOOK_GRACE

    deadline = Deadline(timeout)
    when = deadline.wall_clock().astimezone().isoformat(timespec="milliseconds")
    logger.info(f"invoking shutdown hooks with deadline {when}")
    if report:
        report(f"invoking shutdown hooks with deadline {when}")

    results: list[Exception | None] = [None] * len(hooks)

    def invoke(index: int, hook: ShutdownHook) -> None:
        exc = run_isolated("shutdown hook", hook, deadline)
        results[index] = exc
        if exc is not None and report:
            report(f"failed shutdown hook: {exc}")

    threads = []
    for i, hook in enumerate(hooks):
        thread = threading.Thread(
            target=invoke,
            args=(i, hook),
            name=f"shutdown-hook-{i}",
            daemon=True,
        )
        thread.start()
        threads.append(thread)

    give_up = time.monotonic() + join_timeout
    for hook, thread in zip(hooks, threads):
        thread.join(timeout=max(0.0, give_up - time.monotonic()))
        if thread.is_alive():
            logger.warning(f"abandoning shutdown hook {_hook_name(hook)} after {join_timeout}s")

    # Anything still running sees the deadline as over from here on.
    deadline.cancel()
    return [exc for exc in results if exc is not None]
