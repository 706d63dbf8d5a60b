import stat
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

FAKE_ENVOY_SOURCE = Path(__file__).with_name("fake_envoy.py")


@pytest.fixture(autouse=True)
def set_test_warden_home(tmp_path, monkeypatch):
    """Point WARDEN_HOME at a temporary directory for every test.

    This keeps runs, archives and warden.log out of the real home directory.
    """
    home = tmp_path / "warden-home"
    monkeypatch.setenv("WARDEN_HOME", str(home))
    monkeypatch.delenv("WARDEN_ENVOY_PATH", raising=False)
    for name in ("FAKE_ENVOY_READY_DELAY", "FAKE_ENVOY_EXIT", "FAKE_ENVOY_IGNORE_SIGINT"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def run_dir(tmp_path):
    """An existing run directory, named like the ones warden creates."""
    path = tmp_path / "runs" / "1619574747231823000"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def fake_envoy(tmp_path):
    """Write an executable ``envoy`` that runs tests/fake_envoy.py."""
    if sys.platform == "win32":
        pytest.skip("fake envoy relies on a shebang line")
    path = tmp_path / "bin" / "envoy"
    path.parent.mkdir()
    path.write_text(f"#!{sys.executable}\n" + FAKE_ENVOY_SOURCE.read_text(encoding="utf-8"))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class AdminStub:
    """Minimal admin API on 127.0.0.1 serving canned responses."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        stub = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                stub.requests.append(self.path)
                status, body = stub.routes.get(self.path, (404, b"not found"))
                if isinstance(body, str):
                    body = body.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args):
                pass

        self.server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    @property
    def address(self):
        host, port = self.server.server_address[:2]
        return f"{host}:{port}"

    @property
    def port(self):
        return self.server.server_address[1]


@pytest.fixture
def admin_stub():
    """Start an admin API stub; set ``stub.routes[path] = (status, body)``."""
    stub = AdminStub({})
    stub.thread.start()
    yield stub
    stub.server.shutdown()
    stub.server.server_close()
    stub.thread.join(timeout=2)
