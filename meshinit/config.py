"""
Configuration for the supervisor.

Settings come from environment variables (a .env file is loaded first) or
from a TOML file for file-driven deployments. Either way they end up in an
immutable Config that the orchestrator owns for the whole run.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

load_dotenv()

DEFAULT_SIDECAR_ENDPOINT = "http://127.0.0.1:15021"
DEFAULT_READINESS_PATH = "/healthz/ready"
DEFAULT_SHUTDOWN_PATH = "/quitquitquit"
DEFAULT_RETRY_INTERVAL = 3.0
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_LOG_BACKUP_COUNT = 5


def env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean flag from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    """Read a float from the environment; empty means unset."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _join(endpoint: str, path: str) -> str:
    if not path:
        return endpoint
    return f"{endpoint.rstrip('/')}/{path.lstrip('/')}"


@dataclass(frozen=True)
class SidecarConfig:
    """Sidecar integration settings. Present on Config only when enabled."""

    endpoint: str = DEFAULT_SIDECAR_ENDPOINT
    terminate_after_exit: bool = False
    readiness_path: str = DEFAULT_READINESS_PATH
    shutdown_path: str = DEFAULT_SHUTDOWN_PATH
    shutdown_method: str = "POST"

    def __post_init__(self):
        try:
            url = httpx.URL(self.endpoint)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid sidecar endpoint {self.endpoint!r}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(
                f"Sidecar endpoint must be an http(s) URL, got {self.endpoint!r}"
            )
        object.__setattr__(self, "shutdown_method", self.shutdown_method.upper())

    @property
    def readiness_url(self) -> str:
        return _join(self.endpoint, self.readiness_path)

    @property
    def shutdown_url(self) -> str:
        return _join(self.endpoint, self.shutdown_path)


@dataclass(frozen=True)
class Config:
    """Supervisor configuration for a single run."""

    # Workload
    command: str
    args: tuple[str, ...] = ()

    # Sidecar integration, None when disabled
    sidecar: Optional[SidecarConfig] = None

    # Readiness loop
    readiness_retry_interval: float = DEFAULT_RETRY_INTERVAL
    readiness_timeout: Optional[float] = None

    # Init behaviour
    enable_process_subreaper: bool = False
    forward_signals: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_max_bytes: int = DEFAULT_LOG_MAX_BYTES
    log_backup_count: int = DEFAULT_LOG_BACKUP_COUNT

    def __post_init__(self):
        """Normalize fields and reject values the run cannot work with."""
        if not self.command:
            raise ConfigurationError("A workload command is required")
        object.__setattr__(self, "args", tuple(self.args))

        if self.readiness_retry_interval <= 0:
            raise ConfigurationError("Readiness retry interval must be positive")
        if self.readiness_timeout is not None and self.readiness_timeout <= 0:
            raise ConfigurationError("Readiness timeout must be positive")

        level = self.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"Unknown log level {self.log_level!r}")
        object.__setattr__(self, "log_level", level)

        if self.log_file is not None:
            object.__setattr__(self, "log_file", Path(self.log_file))

    @property
    def sidecar_enabled(self) -> bool:
        return self.sidecar is not None


# Pydantic models for file-driven configuration
class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProcessSection(_Section):
    command: str = Field(..., min_length=1, description="Workload executable")
    args: list[str] = Field(default_factory=list, description="Workload arguments")


class SidecarSection(_Section):
    enabled: bool = Field(True, description="Set to false to keep the table but skip the sidecar")
    endpoint: str = Field(DEFAULT_SIDECAR_ENDPOINT, description="Sidecar status/admin endpoint")
    terminate_after_exit: bool = Field(False, description="Shut the sidecar down after the workload exits")
    readiness_path: str = DEFAULT_READINESS_PATH
    shutdown_path: str = DEFAULT_SHUTDOWN_PATH
    shutdown_method: str = "POST"


class ReadinessSection(_Section):
    retry_interval: float = Field(DEFAULT_RETRY_INTERVAL, gt=0, description="Seconds between probes")
    timeout: Optional[float] = Field(None, gt=0, description="Give up after this many seconds")


class LoggingSection(_Section):
    level: str = "INFO"
    file: Optional[str] = None
    max_bytes: int = Field(DEFAULT_LOG_MAX_BYTES, gt=0)
    backup_count: int = Field(DEFAULT_LOG_BACKUP_COUNT, ge=0)


class InitSection(_Section):
    enable_process_subreaper: bool = False
    forward_signals: bool = True


class FileConfig(_Section):
    process: ProcessSection
    sidecar: Optional[SidecarSection] = None
    readiness: ReadinessSection = Field(default_factory=ReadinessSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)
    init: InitSection = Field(default_factory=InitSection)

    def to_config(self) -> Config:
        sidecar = None
        if self.sidecar is not None and self.sidecar.enabled:
            sidecar = SidecarConfig(
                endpoint=self.sidecar.endpoint,
                terminate_after_exit=self.sidecar.terminate_after_exit,
                readiness_path=self.sidecar.readiness_path,
                shutdown_path=self.sidecar.shutdown_path,
                shutdown_method=self.sidecar.shutdown_method,
            )
        return Config(
            command=self.process.command,
            args=tuple(self.process.args),
            sidecar=sidecar,
            readiness_retry_interval=self.readiness.retry_interval,
            readiness_timeout=self.readiness.timeout,
            enable_process_subreaper=self.init.enable_process_subreaper,
            forward_signals=self.init.forward_signals,
            log_level=self.logging.level,
            log_file=Path(self.logging.file) if self.logging.file else None,
            log_max_bytes=self.logging.max_bytes,
            log_backup_count=self.logging.backup_count,
        )


def load_config_file(path) -> Config:
    """
    Load a TOML configuration file.

    Example:
        [process]
        command = "/app/server"
        args = ["--port", "8080"]

        [sidecar]
        terminate_after_exit = true

        [readiness]
        retry_interval = 3
        timeout = 120

    Raises:
        ConfigurationError: if the file is missing, unreadable or invalid.
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file {path} does not exist") from None
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e

    try:
        return FileConfig.model_validate(data).to_config()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
