"""Tests for warden.archive."""

import shutil
import tarfile

import pytest

from warden.archive import archive_run_dir, tar_gz
from warden.errors import ArchiveError


def test_archive_run_dir(run_dir):
    (run_dir / "stdout.log").write_text("out\n")
    (run_dir / "node").mkdir()
    (run_dir / "node" / "ps.txt").write_text("PID\n")

    target = archive_run_dir(run_dir)

    assert target == run_dir.parent / "1619574747231823000.tar.gz"
    assert not run_dir.exists()
    with tarfile.open(target, "r:gz") as tar:
        names = set(tar.getnames())
        assert "1619574747231823000/stdout.log" in names
        assert "1619574747231823000/node/ps.txt" in names
        assert tar.extractfile("1619574747231823000/stdout.log").read() == b"out\n"


def test_tar_gz_roots_entries_at_base_name(tmp_path, run_dir):
    (run_dir / "a.txt").write_text("a")
    dst = tmp_path / "out.tar.gz"
    tar_gz(dst, run_dir)
    with tarfile.open(dst) as tar:
        assert all(name.startswith("1619574747231823000") for name in tar.getnames())


def test_archive_missing_dir_keeps_nothing(tmp_path):
    run_dir = tmp_path / "runs" / "gone"
    run_dir.parent.mkdir()
    with pytest.raises(ArchiveError, match="unable to archive run directory"):
        archive_run_dir(run_dir)
    assert not (run_dir.parent / "gone.tar.gz").exists()


def test_archive_kept_when_directory_removal_fails(run_dir, monkeypatch):
    (run_dir / "stdout.log").write_text("out\n")

    def refuse(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(shutil, "rmtree", refuse)
    with pytest.raises(ArchiveError, match="unable to remove run directory"):
        archive_run_dir(run_dir)
    assert (run_dir.parent / "1619574747231823000.tar.gz").exists()
    assert run_dir.exists()
