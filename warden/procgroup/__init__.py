# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Process group control with one contract across operating systems.

The implementation is chosen once, at import time, from ``sys.platform``:

- Linux (``pdeathsig``): own process group, and the kernel kills Envoy if
  warden dies first.
- macOS and other POSIX (``group-kill``): own process group only, so
  :func:`force_kill` also kills Envoy's descendants.
- Windows (``break-group``): a new console process group, interrupted with a
  CTRL_BREAK event instead of a signal.

Both :func:`interrupt` and :func:`force_kill` succeed when the process has
already exited, so they are safe to call repeatedly.
"""

from __future__ import annotations

import sys

if sys.platform.startswith("linux"):
    from .linux import VARIANT, force_kill, interrupt, popen_kwargs
elif sys.platform == "win32":
    from .windows import VARIANT, force_kill, interrupt, popen_kwargs
else:
    from .macos import VARIANT, force_kill, interrupt, popen_kwargs

__all__ = ["VARIANT", "force_kill", "interrupt", "popen_kwargs"]
