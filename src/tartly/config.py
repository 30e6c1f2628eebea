#!/usr/bin/env python3
"""
Pydantic settings for tartly.

Settings are layered: built-in defaults, then an optional YAML file, then
``TARTLY_*`` environment variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from tartly.errors import ValidationError

ENV_PREFIX = "TARTLY_"
CONFIG_ENV_VAR = "TARTLY_CONFIG"
DEFAULT_CONFIG_FILE = Path.home() / ".tartly" / "config.yaml"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseModel):
    """Host-wide tartly settings."""

    label_base: str = Field(default="co.bitwild.tartly.tart", description="launchd label prefix")
    log_prefix: str = Field(default="tartly", description="Prefix for per-VM log files")

    unit_dir: Path = Field(
        default=Path.home() / "Library" / "LaunchAgents",
        description="Directory holding launch agent plists",
    )
    logs_dir: Path = Field(default=Path.home() / "Library" / "Logs", description="VM log directory")
    state_dir: Path = Field(default=Path.home() / ".tartly", description="tartly state root")
    cache_dir: Path = Field(
        default=Path.home() / ".tartly" / "cache",
        description="Directory shared into every VM as the 'cache' mount",
    )
    lock_dir: Path = Field(default=Path.home() / ".tartly" / "locks", description="Lock files")

    tart_binary: str = Field(default="/opt/homebrew/bin/tart", description="tart executable")
    launchctl_binary: str = Field(default="launchctl", description="launchctl executable")
    run_at_load: bool = Field(default=True, description="Start the agent when it is registered")

    start_timeout: float = Field(default=10.0, ge=0, description="Seconds to wait for a VM to run")
    stop_timeout: float = Field(default=10.0, ge=0, description="Seconds to wait after launchctl stop")
    final_stop_timeout: float = Field(default=5.0, ge=0, description="Seconds to wait after tart stop")
    poll_interval: float = Field(default=0.5, gt=0, description="State polling interval")
    lock_timeout: float = Field(default=10.0, ge=0, description="Seconds to wait for a VM lock")
    command_timeout: float = Field(default=60.0, gt=0, description="Per-command subprocess timeout")

    log_level: str = Field(default="INFO", description="DEBUG|INFO|WARNING|ERROR")

    @field_validator("label_base")
    @classmethod
    def label_base_must_be_valid(cls, v: str) -> str:
        v = v.strip().rstrip(".")
        if not v:
            raise ValueError("label_base cannot be empty")
        if "/" in v:
            raise ValueError("label_base must not contain '/'")
        return v

    @field_validator("unit_dir", "logs_dir", "state_dir", "cache_dir", "lock_dir", mode="before")
    @classmethod
    def expand_user(cls, v: Any) -> Any:
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {sorted(_LOG_LEVELS)}")
        return level


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    overrides = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ and environ[key] != "":
            overrides[name] = environ[key]
    return overrides


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Failed to read config file {path}: {e}")
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError(f"Config file {path} must be a YAML mapping")
    return raw


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, a YAML file and the environment.

    Args:
        path: Explicit config file. Must exist when given.
        environ: Environment mapping (defaults to ``os.environ``)
    """
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if path is None and environ.get(CONFIG_ENV_VAR):
        path = Path(environ[CONFIG_ENV_VAR]).expanduser()
    if path is not None:
        if not path.exists():
            raise ValidationError(f"Config file not found: {path}")
        data.update(_read_config_file(path))
    elif DEFAULT_CONFIG_FILE.exists():
        data.update(_read_config_file(DEFAULT_CONFIG_FILE))

    data.update(_env_overrides(environ))

    try:
        return Settings.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"Invalid setting '{loc}': {first.get('msg')}") from e
