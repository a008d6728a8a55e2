"""
Exception hierarchy for procshell.

All errors raised by the package inherit from ShellError, so callers can
catch every process-lifecycle failure with a single except clause while
still distinguishing launch, signal and exit failures when they need to.
"""

import signal
from typing import Any

# Names used when rendering a signal death, matching the shell convention
_SIGNAL_NAMES: dict[int, str] = {
    int(signal.SIGINT): "interrupt",
    int(signal.SIGTERM): "terminated",
}
if hasattr(signal, "SIGKILL"):
    _SIGNAL_NAMES[int(signal.SIGKILL)] = "killed"


class ShellError(Exception):
    """
    Base exception for all procshell errors.

    Example:
        try:
            procshell.run(cmd, deadline=5.0)
        except ShellError as e:
            logger.error(f"command failed: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class LaunchError(ShellError):
    """
    Raised when the OS rejects process creation.

    Examples:
        - Executable not found
        - Permission denied
        - Working directory does not exist
    """

    pass


class SignalError(ShellError):
    """
    Raised when a signal cannot be delivered to a live process.

    A process that is already gone is not an error; this is only raised
    for other delivery failures, after escalation to kill was attempted.
    """

    pass


class ExitError(ShellError):
    """
    Raised when a process terminates with a non-zero status.

    Attributes:
        returncode: Raw return code as reported by subprocess (negative
            for signal deaths on POSIX)
        signal: Signal number that terminated the process, or None
    """

    def __init__(self, returncode: int, **context: Any) -> None:
        self.returncode = returncode
        self.signal: int | None = -returncode if returncode < 0 else None
        super().__init__(self._describe(), **context)

    def _describe(self) -> str:
        if self.signal is None:
            return f"exit status {self.returncode}"
        name = _SIGNAL_NAMES.get(self.signal)
        if name is None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
        return f"signal: {name}"


class ConfigError(ShellError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found or too large
        - Invalid YAML syntax
        - Invalid configuration value type
    """

    pass
