"""
Lifecycle controller for a single OS child process.

A Process wraps one launched instance of a Command. A daemon reaper thread
performs the only blocking OS-level wait and deposits the result into a
one-shot exit slot; wait(), stop() and kill() observe or race against that
slot. stop() and kill() share an idempotency guard, so the termination
sequence runs once no matter how many threads ask for it.

Example:
    proc = procshell.start(sh.command("server", "--port", "8080"))
    ...
    proc.stop(deadline=5.0)  # SIGINT, then SIGKILL if still alive at 5s

    proc = proc.restart(deadline=5.0)  # new, independent controller
"""

from __future__ import annotations

import logging
import signal
import subprocess
import threading
from collections.abc import Callable

from .command import Command
from .deadline import Deadline, as_deadline
from .exceptions import ExitError, LaunchError, SignalError
from .sync import DEFAULT_POLL_INTERVAL, ExitSlot, OnceResult

logger = logging.getLogger("procshell.process")

# Cooperative termination request the child may catch
INTERRUPT_SIGNAL = signal.SIGINT
# Forceful termination; Windows has no SIGKILL and maps SIGTERM to TerminateProcess
KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


def is_interrupted(err: Exception | None) -> bool:
    """True if err reports death by the interrupt signal."""
    return isinstance(err, ExitError) and err.signal == INTERRUPT_SIGNAL


def is_killed(err: Exception | None) -> bool:
    """True if err reports death by the kill signal."""
    return isinstance(err, ExitError) and err.signal == KILL_SIGNAL


class Process:
    """
    Controller for one launched OS process.

    Created by start(); never reused for a second launch. restart()
    returns a new Process with fresh handle, exit slot and guard.
    """

    def __init__(
        self,
        command: Command,
        popen: subprocess.Popen,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """
        Wrap a launched process. Use start() rather than calling this directly.

        Args:
            command: Command the process was launched from
            popen: Live process handle
            poll_interval: Max seconds between deadline checks while blocked
        """
        self._command = command
        self._popen = popen
        self._poll_interval = poll_interval
        self._exit = ExitSlot()
        self._once: OnceResult[None] = OnceResult()
        self._reaper: threading.Thread | None = None

    @property
    def command(self) -> Command:
        """Command this process was launched from."""
        return self._command

    @property
    def pid(self) -> int:
        """OS process ID."""
        return self._popen.pid

    @property
    def returncode(self) -> int | None:
        """Raw return code, or None while the process has not been reaped."""
        return self._popen.returncode

    def exited(self) -> bool:
        """True once the reaper has observed process termination."""
        return self._exit.ready()

    def _spawn_reaper(self) -> None:
        """Start the background thread that performs the OS wait."""
        self._reaper = threading.Thread(
            target=self._reap,
            daemon=True,
            name=f"procshell-reaper-{self.pid}",
        )
        self._reaper.start()

    def _reap(self) -> None:
        """Block until the process terminates and deposit the result once."""
        try:
            returncode = self._popen.wait()
        except Exception as e:
            self._exit.put(e)
            return

        result = None if returncode == 0 else ExitError(returncode, pid=self.pid)
        logger.debug(f"process exited (pid={self.pid}, returncode={returncode})")
        self._exit.put(result)

    def _send_signal(self, sig: int) -> bool:
        """
        Deliver a signal to the process.

        Returns:
            False if the process is already gone, True if the signal was sent

        Raises:
            SignalError: If delivery failed for any other reason
        """
        if self._popen.returncode is not None:
            return False
        try:
            self._popen.send_signal(sig)
        except ProcessLookupError:
            return False
        except (OSError, ValueError) as e:
            raise SignalError(
                f"failed to send {signal.Signals(sig).name}", pid=self.pid
            ) from e
        return True

    def wait(self, deadline: Deadline | float | None = None) -> None:
        """
        Wait for the process to exit.

        If the deadline fires first the process is killed and the outcome
        of kill() is returned instead: cancelling a wait means the caller
        wants the process gone. Waiting again after the exit result was
        consumed returns the same cached result.

        Args:
            deadline: Deadline, seconds, or None to wait forever

        Raises:
            ExitError: If the process exited with a non-zero status
            SignalError: If the deadline fired and the kill could not be sent
        """
        if not self._exit.wait(as_deadline(deadline), self._poll_interval):
            logger.debug(f"wait deadline reached, killing process (pid={self.pid})")
            self.kill()
            return

        err = self._exit.drain()
        if err is not None:
            raise err

    def stop(self, deadline: Deadline | float | None = None) -> None:
        """
        Stop the process: interrupt first, kill if the deadline fires.

        Idempotent and shared with kill(): the termination sequence runs
        once and every caller observes its single outcome.

        Args:
            deadline: Deadline, seconds, or None to wait for the interrupt
                to be honored indefinitely

        Raises:
            ExitError: If the process exited with an unexpected status
            SignalError: If neither interrupt nor kill could be delivered
        """
        dl = as_deadline(deadline)
        self._once.do(lambda: self._stop(dl))

    def kill(self) -> None:
        """
        Kill the process and wait for it to exit.

        Idempotent and shared with stop(). Has no timeout: a delivered kill
        signal is assumed to always terminate the process.

        Raises:
            ExitError: If the process exited with a status other than killed
            SignalError: If the kill signal could not be delivered
        """
        self._once.do(self._kill)

    def restart(self, deadline: Deadline | float | None = None) -> Process:
        """
        Stop this process and launch a new one from the same command.

        The new process reuses the same path, arguments, environment,
        working directory, stream handles and extra files. If stop() fails
        its error propagates and nothing is launched.

        Args:
            deadline: Deadline for stopping the current process

        Returns:
            Newly started, independent Process
        """
        self.stop(deadline)
        logger.info(f"restarting process (pid={self.pid}, cmd={self._command})")
        return start(self._command, poll_interval=self._poll_interval)

    def _stop(self, deadline: Deadline) -> None:
        expected: Callable[[Exception | None], bool] = is_interrupted
        try:
            if not self._send_signal(INTERRUPT_SIGNAL):
                return
        except SignalError as e:
            logger.warning(f"interrupt failed, escalating to kill: {e}")
            expected = is_killed
            if not self._send_signal(KILL_SIGNAL):
                return

        if not self._exit.wait(deadline, self._poll_interval):
            logger.warning(
                f"process did not exit before deadline, sending "
                f"{signal.Signals(KILL_SIGNAL).name} (pid={self.pid})"
            )
            return self._kill()

        err = self._exit.drain()
        if err is not None and not expected(err):
            raise err
        logger.debug(f"process stopped (pid={self.pid})")

    def _kill(self) -> None:
        if not self._send_signal(KILL_SIGNAL):
            return

        self._exit.wait()
        err = self._exit.drain()
        if err is not None and not is_killed(err):
            raise err
        logger.debug(f"process killed (pid={self.pid})")

    def __repr__(self) -> str:
        return f"Process(pid={self.pid}, returncode={self.returncode}, cmd={self._command!s})"


def start(command: Command, poll_interval: float | None = None) -> Process:
    """
    Launch the OS process described by a command.

    On success exactly one reaper thread is running for the new process.

    Args:
        command: Command to launch
        poll_interval: Max seconds between deadline checks while blocked

    Returns:
        Process controller

    Raises:
        LaunchError: If the OS rejected process creation
    """
    try:
        popen = subprocess.Popen(
            list(command.args),
            executable=command.path,
            cwd=command.dir or None,
            env=command.environ(),
            stdin=command.stdin,
            stdout=command.stdout,
            stderr=command.stderr,
            pass_fds=command.extra_files,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        raise LaunchError(f"failed to start {command.path}: {e}", dir=command.dir) from e

    proc = Process(
        command,
        popen,
        poll_interval=DEFAULT_POLL_INTERVAL if poll_interval is None else poll_interval,
    )
    proc._spawn_reaper()
    logger.info(f"process started (pid={proc.pid}, cmd={command})")
    return proc


def run(command: Command, deadline: Deadline | float | None = None) -> None:
    """
    Launch a command and wait for it to exit.

    Raises:
        LaunchError: If the process could not be started
        ExitError: If the process exited with a non-zero status
    """
    start(command).wait(deadline)
