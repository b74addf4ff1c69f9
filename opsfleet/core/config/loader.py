"""
Configuration loader — reads opsfleet.yml into a FleetConfig.

The file is optional: without one every setting keeps its default.
It is searched for from the working directory upward, so commands work
from any subdirectory of a checkout that carries one. CLI flags
override file values.

    api_region: us-east-1
    profile: ops
    poll_interval: 10
    max_polls: 360
    deadline: 3600
    history: 5
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from opsfleet.core.errors import FleetError

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "opsfleet.yml"


class ConfigError(FleetError):
    """Raised when the configuration file is invalid."""


class FleetConfig(BaseModel):
    """Settings shared by every command."""

    api_region: str = "us-east-1"
    profile: str | None = None
    poll_interval: float = Field(default=10.0, gt=0)
    max_polls: int | None = Field(default=360, ge=1)
    deadline: float | None = Field(default=None, gt=0)
    history: int = Field(default=5, ge=1)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for opsfleet.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to opsfleet.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> FleetConfig:
    """Load and validate the configuration.

    Args:
        path: Explicit path to the file. If None, searches upward and
            falls back to defaults when nothing is found.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return FleetConfig()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return FleetConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return FleetConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
