# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Command line entry point: ``warden run [options] -- <envoy args>``."""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from warden.errors import EnvoyExitError, LaunchError, WardenError
from warden.options import RunOptions, default_home
from warden.run import run

logger = logging.getLogger(__name__)

LOG_FILE = "warden.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def setup_cli(
    parser: argparse.ArgumentParser,
    argv: list[str] | None = None,
    *,
    parse_known: bool = False,
):
    """Parse command line arguments and configure logging.

    The parser will be extended with ``-v``/``--verbose`` and ``-d``/``--debug``
    flags. Environment variables from ``.env`` are loaded first. If
    ``parse_known`` is ``True`` a tuple of ``(args, extra)`` is returned using
    :func:`argparse.ArgumentParser.parse_known_args`.
    """
    load_dotenv()
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug logging"
    )
    if parse_known:
        args, extra = parser.parse_known_args(argv)
    else:
        args = parser.parse_args(argv)
        extra = None

    if args.debug:
        log_level = logging.DEBUG
    elif args.verbose:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logging.basicConfig(level=log_level)

    return (args, extra) if parse_known else args


def add_file_logging(level: int) -> None:
    """Also log to ``warden.log`` in the warden home directory."""
    log_path = default_home() / LOG_FILE
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:
        logger.warning(f"unable to log to {log_path}: {exc}")
        return
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)


def parse_args() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="warden",
        description="Run Envoy under supervision and archive what it leaves behind",
        epilog="Arguments after '--' and any unrecognized arguments are passed to Envoy.",
        allow_abbrev=False,
    )
    parser.add_argument("command", choices=["run"], help="Command to run")
    parser.add_argument(
        "--envoy-path",
        help="Envoy binary to run (default: $WARDEN_ENVOY_PATH or envoy on PATH)",
    )
    parser.add_argument(
        "--run-dir",
        help="Directory for this run's logs and captures (default: $WARDEN_HOME/runs/<time>)",
    )
    parser.add_argument(
        "--no-archive",
        action="store_true",
        help="Keep the run directory instead of replacing it with a .tar.gz",
    )
    return parser


def split_envoy_args(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split ``argv`` at the first ``--`` into warden and Envoy arguments."""
    if "--" in argv:
        i = argv.index("--")
        return argv[:i], argv[i + 1 :]
    return list(argv), []


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    own_argv, envoy_args = split_envoy_args(argv)

    parser = parse_args()
    args, extra = setup_cli(parser, own_argv, parse_known=True)
    envoy_args = extra + envoy_args

    add_file_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        opts = RunOptions.from_env(
            envoy_path=args.envoy_path,
            run_dir=args.run_dir,
            dont_archive_run_dir=args.no_archive,
        )
    except WardenError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    logger.info(f"running {opts.envoy_path} in {opts.run_dir}")
    try:
        run(envoy_args, opts)
    except (EnvoyExitError, LaunchError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        print(f"run directory: {exc.run_dir}", file=sys.stderr)
        return 1
    except WardenError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
