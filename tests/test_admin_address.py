"""Tests for warden.admin_address."""

import logging
import os

import pytest

from warden.admin_address import (
    ADMIN_ADDRESS_FILE,
    EPHEMERAL_ADMIN_YAML,
    RUN_DIR_FLAG,
    append_run_dir_flag,
    ensure_admin_address,
    extract_flag_value,
)
from warden.errors import ArgumentError, FlagNotFoundError

RUN_DIR = "/runs/1619574747231823000"
DEFAULT_PATH = os.path.join(RUN_DIR, ADMIN_ADDRESS_FILE)


def no_admin(args):
    return ""


def has_admin(args):
    return "127.0.0.1:9901"


def test_no_config_leaves_args_alone():
    args = ["--log-level", "debug"]
    path, out = ensure_admin_address(args, RUN_DIR, find_admin=has_admin)
    assert path == ""
    assert out == args
    assert out is not args


def test_missing_admin_address_path_value():
    args = ["-c", "envoy.yaml", "--admin-address-path"]
    with pytest.raises(ArgumentError) as exc_info:
        ensure_admin_address(args, RUN_DIR)
    assert str(exc_info.value) == 'missing value to argument "--admin-address-path"'
    assert args == ["-c", "envoy.yaml", "--admin-address-path"]


def test_empty_admin_address_path_value():
    with pytest.raises(ArgumentError):
        ensure_admin_address(["--admin-address-path", "", "-c", "e.yaml"], RUN_DIR)


def test_missing_value_detected_without_config():
    with pytest.raises(ArgumentError):
        ensure_admin_address(["--admin-address-path"], RUN_DIR)


def test_injects_default_path_when_admin_declared():
    args = ["-c", "envoy.yaml"]
    path, out = ensure_admin_address(args, RUN_DIR, find_admin=has_admin)
    assert path == DEFAULT_PATH
    assert out == ["-c", "envoy.yaml", "--admin-address-path", DEFAULT_PATH]
    assert args == ["-c", "envoy.yaml"]


def test_injects_ephemeral_admin_when_none_declared():
    path, out = ensure_admin_address(["--config-yaml", "{}"], RUN_DIR, find_admin=no_admin)
    assert path == DEFAULT_PATH
    assert out == [
        "--config-yaml",
        "{}",
        "--config-yaml",
        EPHEMERAL_ADMIN_YAML,
        "--admin-address-path",
        DEFAULT_PATH,
    ]


def test_keeps_caller_admin_address_path():
    args = ["--config-path", "envoy.yaml", "--admin-address-path", "/tmp/admin.txt"]
    path, out = ensure_admin_address(args, RUN_DIR, find_admin=has_admin)
    assert path == "/tmp/admin.txt"
    assert out == args


def test_inspection_failure_only_warns(caplog):
    def broken(args):
        raise ValueError("failed to parse YAML")

    with caplog.at_level(logging.WARNING, logger="warden.admin_address"):
        path, out = ensure_admin_address(["-c", "bad.yaml"], RUN_DIR, find_admin=broken)

    assert path == DEFAULT_PATH
    assert EPHEMERAL_ADMIN_YAML not in out
    assert "failed to parse YAML" in caplog.text


def test_flags_after_marker_are_private():
    args = ["-c", "envoy.yaml", "--", "--admin-address-path"]
    path, out = ensure_admin_address(args, RUN_DIR, find_admin=has_admin)
    assert path == DEFAULT_PATH
    assert out == [
        "-c",
        "envoy.yaml",
        "--admin-address-path",
        DEFAULT_PATH,
        "--",
        "--admin-address-path",
    ]


def test_config_after_marker_is_ignored():
    path, out = ensure_admin_address(["--", "-c", "envoy.yaml"], RUN_DIR, find_admin=has_admin)
    assert path == ""
    assert out == ["--", "-c", "envoy.yaml"]


def test_real_inspection_finds_admin(tmp_path):
    config = tmp_path / "envoy.yaml"
    config.write_text(
        "admin:\n  address:\n    socket_address: {address: 127.0.0.1, port_value: 9901}\n"
    )
    path, out = ensure_admin_address(["-c", str(config)], RUN_DIR)
    assert EPHEMERAL_ADMIN_YAML not in out
    assert out[-2:] == ["--admin-address-path", DEFAULT_PATH]


def test_append_run_dir_flag():
    assert append_run_dir_flag(["-c", "e.yaml"], RUN_DIR) == [
        "-c",
        "e.yaml",
        "--",
        RUN_DIR_FLAG,
        RUN_DIR,
    ]


def test_append_run_dir_flag_reuses_marker():
    assert append_run_dir_flag(["-c", "e.yaml", "--", "x"], RUN_DIR) == [
        "-c",
        "e.yaml",
        "--",
        "x",
        RUN_DIR_FLAG,
        RUN_DIR,
    ]


def test_extract_flag_value_from_shell_wrapper():
    cmdline = ["sh", "-c", "envoy -c e.yaml --admin-address-path /tmp/a.txt"]
    assert extract_flag_value("--admin-address-path", cmdline) == "/tmp/a.txt"


def test_extract_flag_value_missing():
    with pytest.raises(FlagNotFoundError) as exc_info:
        extract_flag_value(RUN_DIR_FLAG, ["envoy", "-c", "e.yaml", RUN_DIR_FLAG])
    assert str(exc_info.value) == "--warden-run-dir not found in command line"
