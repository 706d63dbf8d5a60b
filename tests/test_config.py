"""Tests for warden.config."""

import pytest

from warden.config import Listener, find_admin_address, parse_bootstrap, parse_listeners

ADMIN_YAML = """
admin:
  address:
    socket_address:
      address: 127.0.0.1
      port_value: 9901
"""

LISTENERS_YAML = """
static_resources:
  listeners:
    - name: main
      address:
        socket_address:
          address: 0.0.0.0
          port_value: 10000
    - name: dns
      address:
        socket_address:
          address: 0.0.0.0
          port_value: 10053
          protocol: UDP
"""


def test_admin_from_config_file(tmp_path):
    config = tmp_path / "envoy.yaml"
    config.write_text(ADMIN_YAML)
    assert find_admin_address(["-c", str(config)]) == "127.0.0.1:9901"
    assert find_admin_address(["--config-path", str(config)]) == "127.0.0.1:9901"


def test_admin_from_config_yaml():
    assert find_admin_address(["--config-yaml", ADMIN_YAML]) == "127.0.0.1:9901"


def test_no_admin_declared():
    assert find_admin_address(["--config-yaml", LISTENERS_YAML]) == ""
    assert find_admin_address([]) == ""


def test_later_source_wins(tmp_path):
    config = tmp_path / "envoy.yaml"
    config.write_text(ADMIN_YAML)
    override = "admin: {address: {socket_address: {address: '127.0.0.1', port_value: 0}}}"
    args = ["-c", str(config), "--config-yaml", override]
    assert find_admin_address(args) == "127.0.0.1:0"


def test_listeners():
    listeners = parse_listeners(["--config-yaml", LISTENERS_YAML])
    assert listeners == [
        Listener(name="main", address="0.0.0.0:10000"),
        Listener(name="dns", address="0.0.0.0:10053", protocol="UDP"),
    ]


def test_bootstrap_merges_admin_and_listeners():
    bootstrap = parse_bootstrap(["--config-yaml", LISTENERS_YAML, "--config-yaml", ADMIN_YAML])
    assert bootstrap.admin == "127.0.0.1:9901"
    assert set(bootstrap.listeners) == {"main", "dns"}


def test_stops_at_marker():
    assert find_admin_address(["--", "--config-yaml", ADMIN_YAML]) == ""


def test_missing_value():
    with pytest.raises(ValueError, match="missing value for --config-yaml"):
        find_admin_address(["--config-yaml"])


def test_unreadable_file(tmp_path):
    with pytest.raises(ValueError, match="failed to read config file"):
        find_admin_address(["-c", str(tmp_path / "missing.yaml")])


def test_malformed_yaml():
    with pytest.raises(ValueError, match="failed to parse YAML"):
        find_admin_address(["--config-yaml", "admin: [unclosed"])


def test_non_mapping_yaml():
    with pytest.raises(ValueError, match="expected a mapping"):
        find_admin_address(["--config-yaml", "- just\n- a list\n"])
