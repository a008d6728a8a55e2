"""
Lifecycle control for a single OS child process.

Start a command, wait for it with cancellation, stop it gracefully with
escalation to kill, and restart it with identical configuration.

Example:
    import procshell

    sh = procshell.Shell("/srv/app")
    proc = procshell.start(sh.command("./server", "--port", "8080"))
    proc.stop(deadline=5.0)
"""

from importlib.metadata import PackageNotFoundError, version

from .command import Command, Shell
from .config import ShellConfig
from .deadline import Deadline
from .exceptions import ConfigError, ExitError, LaunchError, ShellError, SignalError
from .process import Process, is_interrupted, is_killed, run, start

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("procshell")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

__all__ = [
    # Version
    "__version__",
    # Commands
    "Command",
    "Shell",
    # Process control
    "Process",
    "start",
    "run",
    "is_interrupted",
    "is_killed",
    "Deadline",
    # Configuration
    "ShellConfig",
    # Exceptions
    "ShellError",
    "LaunchError",
    "SignalError",
    "ExitError",
    "ConfigError",
]
