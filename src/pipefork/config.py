"""Config layer: process-wide engine settings.

Settings are read from ``PIPEFORK_*`` environment variables on first use and
cached. Tests inject their own via :func:`set_settings`.
"""

from __future__ import annotations

import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

__all__ = [
    "DEFAULT_TOOLING_ENV_VARS",
    "Settings",
    "get_settings",
    "load_settings",
    "parse_key_value_pairs",
    "reset_settings",
    "set_settings",
]

# Variables that point a child at the parent's own interpreter setup.
DEFAULT_TOOLING_ENV_VARS: Tuple[str, ...] = (
    "PYTHONPATH",
    "PYTHONHOME",
    "PYTHONSTARTUP",
    "VIRTUAL_ENV",
    "COVERAGE_PROCESS_START",
)


class Settings(BaseModel):
    """Engine settings."""

    shell: str = "/bin/sh"
    poll_interval: float = Field(default=1.0, gt=0)
    read_size: int = Field(default=65536, gt=0)
    locale: str = "C"
    tooling_env_vars: Tuple[str, ...] = DEFAULT_TOOLING_ENV_VARS

    @field_validator("tooling_env_vars", mode="before")
    @classmethod
    def split_names(cls, v):
        """Accept a comma separated string as well as a sequence."""

        if isinstance(v, str):
            return tuple(name.strip() for name in v.split(",") if name.strip())
        return v


_SETTINGS: Optional[Settings] = None

_ENV_KEYS = {
    "PIPEFORK_SHELL": "shell",
    "PIPEFORK_POLL_INTERVAL": "poll_interval",
    "PIPEFORK_READ_SIZE": "read_size",
    "PIPEFORK_LOCALE": "locale",
    "PIPEFORK_TOOLING_ENV": "tooling_env_vars",
}


def parse_key_value_pairs(items: List[str]) -> Dict[str, str]:
    """
    Parse key=value pairs from CLI flags.

    Args:
        items: List of "key=value" strings

    Returns:
        Dictionary of parsed key-value pairs

    Raises:
        ValueError: If any item doesn't contain '='
    """
    result = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Invalid format: {item} (expected key=value)")
        key, value = item.split("=", 1)
        result[key] = value
    return result


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build Settings from PIPEFORK_* variables (default: os.environ)."""
    environ = os.environ if environ is None else environ
    data = {field: environ[key] for key, field in _ENV_KEYS.items() if key in environ}
    return Settings.model_validate(data)


def get_settings() -> Settings:
    """Return cached Settings (loaded from the environment on first use)."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = load_settings()
    return _SETTINGS


def set_settings(settings: Settings) -> None:
    """Inject Settings (for unit tests)."""
    global _SETTINGS
    _SETTINGS = settings


def reset_settings() -> None:
    """Reset cached settings (for tests)."""
    global _SETTINGS
    _SETTINGS = None
