# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Compress a finished run directory into ``<parent>/<base>.tar.gz``."""

from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path

from warden.errors import ArchiveError

logger = logging.getLogger(__name__)


def tar_gz(dst: Path, src_dir: Path) -> None:
    """Write ``src_dir`` into the gzipped tarball ``dst``.

    Entries are rooted at the directory's base name, so
    ``runs/1620955405964267000/stdout.log`` is stored as
    ``1620955405964267000/stdout.log``.
    """
    with tarfile.open(dst, "w:gz") as tar:
        tar.add(src_dir, arcname=src_dir.name)


def archive_run_dir(run_dir: str | Path) -> Path:
    """Archive ``run_dir`` next to itself and delete the original.

    If the archive can't be written, the partial archive is removed and the
    directory is kept. If the directory can't be removed afterwards, the
    archive is kept since it holds everything the directory did.

    Raises:
        ArchiveError: The archive could not be written or the directory
            could not be removed.
    """
    run_dir = Path(run_dir)
    target = run_dir.parent / f"{run_dir.name}.tar.gz"

    try:
        tar_gz(target, run_dir)
    except (OSError, tarfile.TarError) as exc:
        target.unlink(missing_ok=True)
        raise ArchiveError(f"unable to archive run directory {run_dir}: {exc}") from exc

    try:
        shutil.rmtree(run_dir)
    except OSError as exc:
        raise ArchiveError(f"unable to remove run directory {run_dir}: {exc}") from exc

    logger.info(f"Archived run directory to {target}")
    return target
