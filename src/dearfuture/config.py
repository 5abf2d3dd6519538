"""
Settings for Dear Future.

Settings come from an optional YAML file, with the data file location
overridable through the DEARFUTURE_DATA_FILE environment variable:

    # dearfuture.yaml
    data_file: ~/capsules/capsules.json
    log_level: INFO
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dearfuture.errors import ConfigError

DATA_FILE_ENV = "DEARFUTURE_DATA_FILE"
DEFAULT_DATA_FILE = Path("data/capsules.json")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """
    Runtime settings.

    Attributes:
        data_file: JSON file backing the capsule store
        log_level: Minimum level for log output
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_file: Path = Field(
        default=DEFAULT_DATA_FILE,
        description="JSON file backing the capsule store",
    )
    log_level: str = Field(
        default="WARNING",
        description="Minimum level for log output",
    )

    @field_validator("data_file")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Allow ~ in configured paths."""
        return v.expanduser()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Log level must be a standard logging level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return level


def load_settings(
    path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """
    Load settings from a YAML file and the environment.

    Args:
        path: Optional YAML file; missing means defaults
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated Settings object

    Raises:
        ConfigError: If the file can't be read or doesn't match the schema
    """
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(path=str(path), underlying_error=str(e)) from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(path=str(path), underlying_error="top level must be a mapping")
        data.update(loaded or {})

    if environ.get(DATA_FILE_ENV):
        data["data_file"] = environ[DATA_FILE_ENV]

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=str(path or "<environment>"), underlying_error=str(e)) from e
