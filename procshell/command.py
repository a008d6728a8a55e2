"""
Command descriptors and the builder that produces them.

A Shell holds process-wide defaults (working directory, environment,
standard streams) and stamps them onto each Command it creates. A Command
is immutable; it can be started any number of times, each start producing
an independent Process.

Example:
    sh = Shell("/srv/app")
    cmd = sh.command("make", "build")
    cmd.run(deadline=60.0)

    # Override defaults per builder
    with open("out.log", "wb") as out:
        sh = Shell(stdout=out, stderr=out)
        proc = sh.command("sh", "-c", "echo hi").start()
        proc.wait()
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .config import ShellConfig
    from .deadline import Deadline
    from .process import Process

# Anything subprocess accepts for a standard stream: file object, fd,
# subprocess.DEVNULL/PIPE, or None to inherit from this process
Stream = Union[IO[Any], int, None]


def environ_entries(env: Mapping[str, str]) -> tuple[str, ...]:
    """Convert a mapping to an ordered tuple of KEY=VALUE entries."""
    return tuple(f"{key}={value}" for key, value in env.items())


def environ_dict(entries: Iterable[str]) -> dict[str, str]:
    """
    Convert KEY=VALUE entries to a mapping.

    Later entries win over earlier ones with the same key. Entries without
    "=" are ignored, as the OS would.
    """
    env: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if sep and key:
            env[key] = value
    return env


@dataclass(frozen=True)
class Command:
    """
    Immutable bundle of launch parameters for one OS process.

    Attributes:
        path: Resolved executable path
        args: Argument vector; args[0] is the name as given by the caller
        dir: Working directory ("" inherits the current directory)
        env: KEY=VALUE entries, or None to inherit the current environment
        stdin: Standard input source (None inherits)
        stdout: Standard output destination (None inherits)
        stderr: Standard error destination (None inherits)
        extra_files: File descriptors passed through unchanged to the child
    """

    path: str
    args: tuple[str, ...]
    dir: str = ""
    env: tuple[str, ...] | None = None
    stdin: Stream = None
    stdout: Stream = None
    stderr: Stream = None
    extra_files: tuple[int, ...] = field(default_factory=tuple)

    def environ(self) -> dict[str, str] | None:
        """Environment mapping for subprocess, or None to inherit."""
        if self.env is None:
            return None
        return environ_dict(self.env)

    def start(self, poll_interval: float | None = None) -> Process:
        """Launch this command. See procshell.process.start()."""
        from .process import start

        return start(self, poll_interval=poll_interval)

    def run(self, deadline: Deadline | float | None = None) -> None:
        """Launch this command and wait for it. See procshell.process.run()."""
        from .process import run

        run(self, deadline)

    def __str__(self) -> str:
        return " ".join(self.args)


class Shell:
    """
    Builder holding process-wide defaults for new commands.

    Defaults inherit the current environment and standard streams.
    Attributes may be reassigned at any time; each command() call
    snapshots the current values.
    """

    def __init__(
        self,
        dir: str = "",
        env: Iterable[str] | None = None,
        stdin: Stream = None,
        stdout: Stream = None,
        stderr: Stream = None,
    ) -> None:
        """
        Initialize builder.

        Args:
            dir: Working directory for commands ("" inherits)
            env: KEY=VALUE entries (default: snapshot of os.environ)
            stdin: Default standard input (None inherits)
            stdout: Default standard output (None inherits)
            stderr: Default standard error (None inherits)
        """
        self.dir = dir
        self.env: list[str] = (
            list(env) if env is not None else list(environ_entries(os.environ))
        )
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr

    @classmethod
    def from_config(cls, config: ShellConfig) -> Shell:
        """
        Create a builder from a ShellConfig.

        The environment is the current process environment (when
        config.inherit_env is set) overlaid with config.env.
        """
        base: dict[str, str] = dict(os.environ) if config.inherit_env else {}
        base.update(config.env)
        return cls(dir=config.dir, env=environ_entries(base))

    def command(self, name: str, *args: str, extra_files: Iterable[int] = ()) -> Command:
        """
        Create a command populated with this builder's defaults.

        Args:
            name: Program name or path; bare names are resolved on PATH
            *args: Program arguments
            extra_files: File descriptors to pass through to the child

        Returns:
            Command ready to start
        """
        return Command(
            path=self._look_path(name),
            args=(name, *args),
            dir=self.dir,
            env=tuple(self.env),
            stdin=self.stdin,
            stdout=self.stdout,
            stderr=self.stderr,
            extra_files=tuple(extra_files),
        )

    def _look_path(self, name: str) -> str:
        """Resolve name against the builder's PATH, falling back to name."""
        if os.sep in name or (os.altsep and os.altsep in name):
            return name
        search = environ_dict(self.env).get("PATH")
        return shutil.which(name, path=search) or name
