# src/successcore/config/models.py
"""
Configuration model and loader for successcore applications.

The configuration file is TOML with a single ``[success]`` table::

    [success]
    archive_path = "~/success-archive"
    future_tolerance_days = 0

    [success.logging]
    console_enabled = false
    file_directory = "~/.local/share/successcore/logs"

The library core never reads this file itself. An application loads it
once at startup and passes plain values (the archive path, the tolerance)
into :class:`~successcore.tracking.Tracker`.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import ConfigError

CONFIG_SECTION = "success"


class SuccessConfig(BaseModel):
    """
    Process-wide configuration, immutable once loaded.

    Examples:
        >>> config = SuccessConfig(archive_path="/tmp/success")
        >>> config.future_tolerance_days
        0
    """

    model_config = {"frozen": True, "extra": "forbid"}

    archive_path: str = Field(
        description="Directory holding the archive. Tilde and environment variables are expanded.",
    )
    future_tolerance_days: int = Field(
        default=0,
        ge=0,
        le=366,
        description="How many days in the future a session may be dated",
    )
    logging: Dict[str, Any] = Field(
        default_factory=dict,
        description="Overrides for the logging configuration (see successcore.logging_config)",
    )

    @field_validator("archive_path")
    @classmethod
    def expand_archive_path(cls, v: str) -> str:
        """Expand ~ and environment variables in archive_path."""
        v = v.strip()
        if not v:
            raise ValueError("archive_path must not be empty")
        return os.path.expanduser(os.path.expandvars(v))


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SuccessConfig:
    """
    Load configuration from a TOML file and/or a dictionary.

    Args:
        config_path: Path to a TOML file. Its ``[success]`` table is used.
        config_dict: Pre-parsed configuration. A top-level ``"success"``
            key is unwrapped if present. Applied on top of the file.
        overrides: Final overrides (e.g. a ``--archive`` CLI flag). ``None``
            values are ignored.

    Returns:
        A validated SuccessConfig.

    Raises:
        ConfigError: If the file is missing or unparseable, or validation fails.

    Examples:
        >>> load_config(config_dict={"success": {"archive_path": "/tmp/a"}}).archive_path
        '/tmp/a'
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        data.update(raw.get(CONFIG_SECTION, {}))

    if config_dict is not None:
        data.update(config_dict.get(CONFIG_SECTION, config_dict))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return SuccessConfig(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
