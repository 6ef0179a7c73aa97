"""Persisted per-user configuration.

A single JSON object stored in the home directory. It holds the GitHub token
and a few convenience fields remembered from the previous run.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from .models import UserConfig

CONFIG_FILE = Path.home() / ".tao-extension-release"


def load_config(path: Path | None = None) -> UserConfig:
    """Load the configuration; a missing or unreadable file gives an empty one."""
    path = path or CONFIG_FILE
    if not path.exists():
        return UserConfig()
    try:
        return UserConfig.model_validate(json.loads(path.read_text()))
    except (json.JSONDecodeError, ValidationError):
        return UserConfig()


def write_config(config: UserConfig, path: Path | None = None) -> None:
    path = path or CONFIG_FILE
    path.write_text(config.model_dump_json(indent=2, exclude_none=True) + "\n")
