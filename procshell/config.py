"""
Configuration for command builders and the procshell CLI.

ShellConfig is immutable and can be created from parameters, from a
configuration dictionary section, or from a YAML file with environment
variable overrides.

YAML example:
    shell:
      dir: /srv/app
      inherit_env: true
      env:
        APP_MODE: production
      stop_timeout: 5.0
      poll_interval: 0.05
      log_level: info

Environment override format:
    PROCSHELL_<KEY>=value   (e.g. PROCSHELL_STOP_TIMEOUT=10)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError
from .sync import DEFAULT_POLL_INTERVAL

# Maximum config file size (10MB)
MAX_CONFIG_SIZE_BYTES = 10 * 1024 * 1024

DEFAULT_SECTION = "shell"
DEFAULT_ENV_PREFIX = "PROCSHELL_"

LEVEL_NAMES: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


@dataclass(frozen=True)
class ShellConfig:
    """
    Immutable configuration for a command builder.

    Attributes:
        dir: Working directory for commands ("" inherits)
        env: Environment variables added on top of the base environment
        inherit_env: Whether the base environment is os.environ (or empty)
        stop_timeout: Seconds to wait for an interrupt to be honored before
            killing, or None to wait indefinitely
        poll_interval: Seconds between deadline checks while blocked
        log_level: Logging level name
    """

    dir: str = ""
    env: Mapping[str, str] = field(default_factory=dict)
    inherit_env: bool = True
    stop_timeout: float | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: str = "info"

    @property
    def level(self) -> int:
        """Numeric logging level."""
        return LEVEL_NAMES[self.log_level]

    @classmethod
    def from_params(
        cls,
        dir: str = "",
        env: Mapping[str, Any] | None = None,
        inherit_env: bool = True,
        stop_timeout: float | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        log_level: str = "info",
    ) -> ShellConfig:
        """
        Create a validated ShellConfig from individual parameters.

        Raises:
            ConfigError: If any value is invalid
        """
        if env is None:
            env = {}
        if not isinstance(env, Mapping):
            raise ConfigError("env must be a mapping", value=env)
        if stop_timeout is not None:
            stop_timeout = _to_float("stop_timeout", stop_timeout)
            if stop_timeout < 0:
                raise ConfigError("stop_timeout must be >= 0", value=stop_timeout)
        poll_interval = _to_float("poll_interval", poll_interval)
        if poll_interval <= 0:
            raise ConfigError("poll_interval must be > 0", value=poll_interval)
        level = str(log_level).lower()
        if level not in LEVEL_NAMES:
            raise ConfigError(f"Invalid log level: {log_level}")

        return cls(
            dir=str(dir or ""),
            env={str(k): str(v) for k, v in env.items()},
            inherit_env=bool(inherit_env),
            stop_timeout=stop_timeout,
            poll_interval=poll_interval,
            log_level=level,
        )

    @staticmethod
    def _navigate_to_section(config_dict: Mapping[str, Any], section: str) -> Mapping[str, Any]:
        """Navigate to a dotted section, falling back to an empty dict."""
        current: Any = config_dict
        for part in section.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                return {}
        return current if isinstance(current, Mapping) else {}

    @classmethod
    def from_config(
        cls, config_dict: Mapping[str, Any], section: str = DEFAULT_SECTION
    ) -> ShellConfig:
        """
        Create ShellConfig from a configuration dictionary section.

        Args:
            config_dict: Configuration dictionary (e.g., parsed YAML)
            section: Dotted section name (default: "shell")

        Example:
            cfg = ShellConfig.from_config({"shell": {"stop_timeout": 3}})
        """
        current = cls._navigate_to_section(config_dict, section)
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(current) - known)
        if unknown:
            raise ConfigError("unknown config keys", section=section, keys=unknown)
        return cls.from_params(**current)

    @classmethod
    def from_file(
        cls,
        fname: str | os.PathLike[str],
        section: str = DEFAULT_SECTION,
        env_prefix: str | None = DEFAULT_ENV_PREFIX,
    ) -> ShellConfig:
        """
        Load ShellConfig from a YAML file.

        Args:
            fname: Path to the YAML file
            section: Dotted section name holding the shell settings
            env_prefix: Prefix for environment overrides, or None to disable

        Raises:
            ConfigError: If the file is missing, too large, malformed or invalid
        """
        path = Path(fname)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise ConfigError("cannot read config file", path=str(path)) from e
        if size > MAX_CONFIG_SIZE_BYTES:
            raise ConfigError(
                f"config file exceeds {MAX_CONFIG_SIZE_BYTES} bytes", path=str(path)
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}", path=str(path)) from e
        if not isinstance(data, dict):
            raise ConfigError("config root must be a mapping", path=str(path))

        if env_prefix:
            data = _apply_env_overrides(data, section, env_prefix)
        return cls.from_config(data, section)


def _to_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number", value=value) from e


def _convert_env_value(value: str) -> Any:
    """Convert an environment variable string to a config value."""
    if value.lower() in ("null", "none", ""):
        return None
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _apply_env_overrides(
    data: dict[str, Any], section: str, env_prefix: str
) -> dict[str, Any]:
    """
    Apply PREFIX_<KEY> environment variables to the shell section.

    Only top-level keys of the section are overridable; env mappings are
    configured in the file.
    """
    overrides: dict[str, Any] = {}
    for field_name in ShellConfig.__dataclass_fields__:
        if field_name == "env":
            continue
        value = os.environ.get(f"{env_prefix}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = _convert_env_value(value)
    if not overrides:
        return data

    current = data
    for part in section.split("."):
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current.update(overrides)
    return data
