# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Supervise one Envoy process from launch to an archived run directory.

A run goes through these steps:

1. Make sure Envoy reports its admin address, then launch it in its own
   process group.
2. Mirror Envoy's stdout and stderr. The first stderr line containing
   :data:`READY_LINE` publishes the admin address and starts the startup
   hook in the background.
3. Wait until Envoy exits, the caller's ``stop`` event is set, or warden is
   interrupted (SIGINT, SIGTERM or :meth:`Runtime.interrupt`).
4. If Envoy is still running, run the shutdown hooks, then interrupt Envoy
   and kill it if it doesn't exit within :data:`SHUTDOWN_TIMEOUT`.
5. Close the log files and archive the run directory.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import sys
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Any

from warden import procgroup
from warden.admin import PID_FILE, parse_admin_port
from warden.admin_address import append_run_dir_flag, ensure_admin_address
from warden.archive import archive_run_dir
from warden.deadline import Deadline
from warden.errors import AdminAddressError, ArchiveError, EnvoyExitError, LaunchError
from warden.logs import TeeWriter
from warden.options import RunOptions
from warden.shutdown import HOOK_GRACE, SHUTDOWN_TIMEOUT, ShutdownHook, run_shutdown_hooks
from warden.startup import SafeStartupHook, collect_config_dump

logger = logging.getLogger(__name__)

READY_LINE = "starting main dispatch loop"

# How often the run loop checks the caller's stop event.
STOP_POLL_INTERVAL = 0.1
# Time allowed for the output pumps to drain after Envoy exits.
PUMP_JOIN_TIMEOUT = 1.0


class Runtime:
    """Runs Envoy once with the given options.

    ``out`` and ``err`` receive Envoy's stdout and stderr verbatim, plus
    warden's own progress lines on ``out``. They default to ``sys.stdout``
    and ``sys.stderr``.
    """

    def __init__(self, opts: RunOptions, out: Any = None, err: Any = None) -> None:
        self.opts = opts
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.admin_address_path = ""

        self._shutdown_hooks: list[ShutdownHook] = []
        self._proc: subprocess.Popen | None = None
        self._admin_address: Future[str] = Future()
        self._out_lock = threading.Lock()

        # Set when Envoy exits or a stop is requested.
        self._wake = threading.Event()
        self._cancelled = threading.Event()
        self._ready = threading.Event()
        # Bounds the startup hook; cancelled once Envoy is gone.
        self._run_deadline = Deadline.never()
        self._startup_thread: threading.Thread | None = None
        self._threads: list[threading.Thread] = []

    def register_shutdown_hook(self, hook: ShutdownHook) -> None:
        """Run ``hook(deadline)`` after a stop request, before Envoy is interrupted."""
        self._shutdown_hooks.append(hook)

    def get_run_dir(self) -> str:
        return self.opts.run_dir

    def get_envoy_pid(self) -> int:
        if self._proc is None:
            raise RuntimeError("envoy process not yet started")
        return self._proc.pid

    def get_admin_address(self) -> str:
        """Return Envoy's admin ``host:port``.

        Before readiness the admin address file is read directly, so this
        also works for callers that poll.

        Raises:
            AdminAddressError: The address isn't known yet or is malformed.
        """
        if self._admin_address.done():
            return self._admin_address.result()

        path = self.admin_address_path
        if not path:
            raise AdminAddressError("admin address path not yet known")
        try:
            address = Path(path).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise AdminAddressError(f"unable to read {path}: {exc}") from exc
        try:
            parse_admin_port(address)
        except ValueError as exc:
            raise AdminAddressError(f"invalid admin address in {path}: {exc}") from exc
        return address

    def interrupt(self) -> None:
        """Request a graceful stop, as Ctrl-C does."""
        if not self._cancelled.is_set():
            logger.info("shutdown requested")
        self._cancelled.set()
        self._wake.set()

    def run(self, args: list[str], stop: threading.Event | None = None) -> None:
        """Run Envoy with ``args`` until it exits or ``stop`` is set.

        Args:
            args: Envoy arguments, excluding the binary.
            stop: Optional event a caller sets to stop Envoy gracefully.

        Raises:
            ArgumentError: ``args`` are malformed. Nothing was started.
            LaunchError: The Envoy binary couldn't be started.
            EnvoyExitError: Envoy exited with a non-zero status without being
                asked to stop.
            ArchiveError: Envoy stopped cleanly but the run directory could
                not be archived.
        """
        if self._proc is not None:
            raise RuntimeError("runtime already ran")

        run_dir = self.opts.run_dir
        self.admin_address_path, envoy_args = ensure_admin_address(args, run_dir)
        envoy_args = append_run_dir_flag(envoy_args, run_dir)
        cmd = [self.opts.envoy_path, *envoy_args]

        self._say(f"starting: {' '.join(cmd)}")
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
                errors="replace",
                **procgroup.popen_kwargs(),
            )
        except OSError as exc:
            self._close_sinks()
            raise LaunchError(
                f"unable to start Envoy process {self.opts.envoy_path}: {exc}",
                envoy_path=self.opts.envoy_path,
                run_dir=run_dir,
            ) from exc

        self._proc = proc
        logger.info(f"started envoy with pid {proc.pid} in {run_dir}")
        self._write_pid_file(proc.pid)
        self._start_threads(proc)

        previous = self._install_signal_handlers()
        stop_requested = False
        try:
            self._await_stop(stop)
            # Only a stop requested before Envoy exited normalizes its status.
            stop_requested = self._cancelled.is_set()
            if proc.poll() is None:
                self._handle_shutdown(proc)
            self._await_termination(proc)
        finally:
            self._restore_signal_handlers(previous)
            if proc.poll() is None:
                # Only reached when waiting was itself interrupted.
                procgroup.force_kill(proc.pid)
                proc.wait()

        archive_error = self._finish()

        returncode = proc.returncode
        logger.info(f"envoy (pid={proc.pid}) exited with status {returncode}")
        if returncode != 0 and not (stop_requested and self._ready.is_set()):
            if archive_error is not None:
                logger.error(str(archive_error))
            raise EnvoyExitError(returncode, run_dir=run_dir)
        if archive_error is not None:
            raise archive_error

    def _say(self, line: str) -> None:
        with self._out_lock:
            self.out.write(line + "\n")
            self.out.flush()

    def _write_pid_file(self, pid: int) -> None:
        path = Path(self.opts.run_dir) / PID_FILE
        try:
            path.write_text(str(pid), encoding="utf-8")
        except OSError as exc:
            logger.warning(f"unable to write {path}: {exc}")

    def _start_threads(self, proc: subprocess.Popen) -> None:
        def wait_for_exit() -> None:
            # Envoy logs its own "caught SIGINT" and exit lines.
            proc.wait()
            self._wake.set()

        self._threads = [
            threading.Thread(target=self._pump_stdout, args=(proc.stdout,), name="envoy-stdout", daemon=True),
            threading.Thread(target=self._scan_stderr, args=(proc.stderr,), name="envoy-stderr", daemon=True),
            threading.Thread(target=wait_for_exit, name="envoy-wait", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def _pump_stdout(self, pipe) -> None:
        try:
            with pipe:
                for line in pipe:
                    with self._out_lock:
                        self.out.write(line)
                        self.out.flush()
        except (OSError, ValueError) as exc:
            logger.error(f"error reading envoy stdout: {exc}")

    def _scan_stderr(self, pipe) -> None:
        """Mirror stderr and watch it for the readiness line."""
        try:
            with pipe:
                for line in pipe:
                    self.err.write(line)
                    self.err.flush()
                    if not self._ready.is_set() and READY_LINE in line:
                        self._ready.set()
                        self._on_ready()
        except (OSError, ValueError) as exc:
            logger.error(f"error reading envoy stderr: {exc}")

    def _on_ready(self) -> None:
        path = self.admin_address_path
        if not path:
            logger.warning("envoy is ready but no admin address path is known")
            return
        try:
            address = Path(path).read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.error(f"unable to read admin address from {path}: {exc}")
            return

        self._admin_address.set_result(address)
        self._say(f"discovered admin address: {address}")

        hook = SafeStartupHook(
            self.opts.startup_hook or collect_config_dump,
            self.opts.startup_timeout,
        )
        self._startup_thread = threading.Thread(
            target=hook,
            args=(self._run_deadline, self.opts.run_dir, address),
            name="startup-hook",
            daemon=True,
        )
        self._startup_thread.start()

    def _await_stop(self, stop: threading.Event | None) -> None:
        while not self._wake.wait(STOP_POLL_INTERVAL):
            if stop is not None and stop.is_set():
                self.interrupt()

    def _handle_shutdown(self, proc: subprocess.Popen) -> None:
        try:
            run_shutdown_hooks(self._shutdown_hooks, report=self._say)
        finally:
            self._say(f"sending interrupt to envoy (pid={proc.pid})")
            try:
                procgroup.interrupt(proc.pid)
            except OSError as exc:
                logger.warning(f"unable to interrupt envoy (pid={proc.pid}): {exc}")

    def _await_termination(self, proc: subprocess.Popen) -> None:
        try:
            proc.wait(timeout=SHUTDOWN_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"envoy (pid={proc.pid}) did not exit within {SHUTDOWN_TIMEOUT}s, killing"
            )
            procgroup.force_kill(proc.pid)
            proc.wait()

    def _finish(self) -> ArchiveError | None:
        """Stop background work, close logs and archive the run directory."""
        self._run_deadline.cancel()
        if self._startup_thread is not None:
            self._startup_thread.join(timeout=HOOK_GRACE)
            if self._startup_thread.is_alive():
                logger.warning("abandoning startup hook that ignored its deadline")
        for thread in self._threads:
            thread.join(timeout=PUMP_JOIN_TIMEOUT)

        self._close_sinks()
        if self.opts.dont_archive_run_dir:
            return None
        try:
            archive_run_dir(self.opts.run_dir)
        except ArchiveError as exc:
            return exc
        return None

    def _close_sinks(self) -> None:
        for sink in (self.out, self.err):
            if isinstance(sink, TeeWriter):
                sink.close()

    def _install_signal_handlers(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}

        def handle(signum, frame):
            self.interrupt()

        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, handle)
        return previous

    def _restore_signal_handlers(self, previous: dict[int, Any]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

