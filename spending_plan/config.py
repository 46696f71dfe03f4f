"""Configuration management for the spending plan engine.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in spending_plan/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("SPENDING_PLAN_DATA_DIR", _PROJECT_ROOT / "data"))
SETTINGS_DIR = DATA_DIR / "settings"
SCENARIOS_DIR = DATA_DIR / "scenarios"

# Logging level for entrypoints (see logging_setup.configure_logging)
LOG_LEVEL_ENV = "SPENDING_PLAN_LOG_LEVEL"
LOG_LEVEL = os.getenv(LOG_LEVEL_ENV, "INFO")


def data_dir() -> Path:
    """Resolve the data directory, honouring a late ``SPENDING_PLAN_DATA_DIR`` override."""
    override = os.getenv("SPENDING_PLAN_DATA_DIR")
    return Path(override) if override else DATA_DIR


def settings_dir() -> Path:
    return data_dir() / "settings"


def scenarios_dir() -> Path:
    return data_dir() / "scenarios"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [data_dir(), settings_dir(), scenarios_dir()]:
        directory.mkdir(parents=True, exist_ok=True)
