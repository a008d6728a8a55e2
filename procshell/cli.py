#!/usr/bin/env python3
"""
procshell CLI - run a command under lifecycle control.

Usage:
    procshell run -- make test
    procshell run --timeout 30 --stop-timeout 5 -- ./server --port 8080
    procshell run --config etc/shell.yaml --dir /srv/app -- ./job.sh
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from types import FrameType
from typing import Any

from .command import Shell
from .config import LEVEL_NAMES, ShellConfig
from .deadline import Deadline
from .exceptions import ConfigError, LaunchError, ShellError
from .process import Process

logger = logging.getLogger("procshell.cli")

LOG_FORMAT = "[%(asctime)s] [%(levelname).1s] %(message)s"

EXIT_LAUNCH_FAILED = 127
EXIT_TIMEOUT = 124
EXIT_CONFIG = 2


class StopOnSignal:
    """
    Stops a child process when this process receives SIGTERM or SIGINT.

    The stop runs on a separate thread so the signal handler returns
    immediately; duplicate signals are ignored. Original handlers are
    restored by restore().
    """

    def __init__(self, proc: Process, stop_timeout: float | None) -> None:
        self._proc = proc
        self._stop_timeout = stop_timeout
        self._signum: int | None = None
        self._thread: threading.Thread | None = None
        self._original_handlers: dict[signal.Signals, Any] = {}

    @property
    def signum(self) -> int | None:
        """Signal that triggered the stop, or None."""
        return self._signum

    def register(self) -> None:
        """Register handlers for SIGTERM and SIGINT."""
        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, self._handle_signal)

    def restore(self) -> None:
        """Restore the handlers that were active before register()."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def return_code(self) -> int:
        """130 for SIGINT, 143 for SIGTERM."""
        return 130 if self._signum == signal.SIGINT else 143

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        if self._signum is not None:
            return  # Ignore duplicate signals

        self._signum = signum
        logger.info(f"received {signal.Signals(signum).name}, stopping child")
        self._thread = threading.Thread(
            target=self._stop, daemon=True, name="procshell-stop"
        )
        self._thread.start()

    def _stop(self) -> None:
        try:
            self._proc.stop(self._stop_timeout)
        except ShellError as e:
            logger.error(f"failed to stop child: {e}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procshell",
        description="Run a command with graceful stop and kill escalation",
    )
    sub = parser.add_subparsers(dest="tool", required=True)

    run = sub.add_parser("run", help="run a command and wait for it")
    run.add_argument("--config", help="YAML config file with a 'shell' section")
    run.add_argument("--section", default="shell", help="config section (default: shell)")
    run.add_argument("--dir", help="working directory for the command")
    run.add_argument("--timeout", type=float, help="kill the command after SECS")
    run.add_argument(
        "--stop-timeout",
        type=float,
        help="seconds to wait after SIGINT before SIGKILL when stopping",
    )
    run.add_argument("--log-level", choices=sorted(LEVEL_NAMES), help="log level")
    run.add_argument("cmd", nargs=argparse.REMAINDER, help="command and arguments")
    return parser


def _load_config(args: argparse.Namespace) -> ShellConfig:
    cfg = (
        ShellConfig.from_file(args.config, section=args.section)
        if args.config
        else ShellConfig()
    )
    overrides = {
        "dir": args.dir,
        "stop_timeout": args.stop_timeout,
        "log_level": args.log_level,
    }
    params = {
        "dir": cfg.dir,
        "env": cfg.env,
        "inherit_env": cfg.inherit_env,
        "stop_timeout": cfg.stop_timeout,
        "poll_interval": cfg.poll_interval,
        "log_level": cfg.log_level,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return ShellConfig.from_params(**params)


def exit_code(returncode: int | None) -> int:
    """Map a subprocess return code to a shell-style exit code."""
    if returncode is None:
        return 1
    if returncode < 0:
        return 128 - returncode
    return returncode


def run_command(cfg: ShellConfig, argv: Sequence[str], timeout: float | None) -> int:
    """
    Run argv under lifecycle control and return the exit code.

    Args:
        cfg: Shell configuration
        argv: Command and arguments
        timeout: Seconds before the command is killed, or None

    Returns:
        Child's exit code, 124 on timeout, 127 on launch failure,
        130/143 when interrupted
    """
    cmd = Shell.from_config(cfg).command(argv[0], *argv[1:])
    try:
        proc = cmd.start(poll_interval=cfg.poll_interval)
    except LaunchError as e:
        logger.error(str(e))
        return EXIT_LAUNCH_FAILED

    stopper = StopOnSignal(proc, cfg.stop_timeout)
    stopper.register()
    deadline = Deadline(timeout)
    try:
        proc.wait(deadline)
    except ShellError as e:
        logger.debug(f"command failed: {e}")
    finally:
        stopper.restore()

    if stopper.signum is not None:
        return stopper.return_code()
    if deadline.expired and proc.returncode is not None and proc.returncode < 0:
        logger.warning(f"command timed out after {timeout}s")
        return EXIT_TIMEOUT
    return exit_code(proc.returncode)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the procshell CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    cmd = list(args.cmd)
    if cmd and cmd[0] == "--":
        cmd = cmd[1:]
    if not cmd:
        parser.error("no command given")

    try:
        cfg = _load_config(args)
    except ConfigError as e:
        print(f"procshell: {e}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(level=cfg.level, format=LOG_FORMAT)
    return run_command(cfg, cmd, args.timeout)


if __name__ == "__main__":
    sys.exit(main())
