"""Spawn option normalization.

Turns caller-facing options into what the child bootstrap expects: numeric
ids, a complete environment overlay, and a ``sudo`` command line when the
command should run as another user.
"""

from __future__ import annotations

import grp
import pwd
import shlex
from typing import Any, Dict, Optional

from .config import Settings, get_settings
from .exceptions import InvalidOptions
from .models import SpawnOptions


def resolve_user(user: int | str | None) -> Optional[int]:
    """Return the uid for a user name (ints pass through)."""
    if user is None or isinstance(user, int):
        return user
    try:
        return pwd.getpwnam(user).pw_uid
    except KeyError:
        raise InvalidOptions(f"Unknown user: {user}") from None


def resolve_group(group: int | str | None) -> Optional[int]:
    """Return the gid for a group name (ints pass through)."""
    if group is None or isinstance(group, int):
        return group
    try:
        return grp.getgrnam(group).gr_gid
    except KeyError:
        raise InvalidOptions(f"Unknown group: {group}") from None


def resolve_umask(umask: int | str | None) -> Optional[int]:
    if umask is None:
        return None
    if isinstance(umask, str):
        try:
            umask = int(umask, 8)
        except ValueError:
            raise InvalidOptions(f"Invalid umask (expected octal): {umask}") from None
    return umask & 0o7777


def build_environment(options: SpawnOptions, settings: Settings) -> Dict[str, str | None]:
    """
    Complete the caller's environment overlay.

    - LC_ALL defaults to the configured locale so command output parses the
      same everywhere. A caller-supplied LC_ALL, even None, is left alone.
    - Tooling variables are deleted unless the caller opted out or set them.
    """
    environment = dict(options.environment)
    environment.setdefault("LC_ALL", settings.locale)
    if not options.keep_tooling_env:
        for name in settings.tooling_env_vars:
            environment.setdefault(name, None)
    return environment


def sudo_command(command: str | list[str], user: str, environment: Dict[str, str | None]) -> str:
    """Rewrite a command to run as ``user`` through sudo.

    sudo resets the environment, so the overlay is passed inline through env(1).
    """
    assignments = [f"{key}={shlex.quote(value)}" for key, value in environment.items() if value is not None]
    parts = ["sudo", "-H", "-u", shlex.quote(user)]
    if assignments:
        parts.append("env")
        parts.extend(assignments)
    parts.append(shlex.join(command) if isinstance(command, list) else command)
    return " ".join(parts)


def normalize_options(options: SpawnOptions, settings: Optional[Settings] = None) -> SpawnOptions:
    """Return a normalized copy of ``options``. Normalizing twice is a no-op."""
    settings = settings or get_settings()
    environment = build_environment(options, settings)
    update: Dict[str, Any] = {
        "user": resolve_user(options.user),
        "group": resolve_group(options.group),
        "umask": resolve_umask(options.umask),
        "environment": environment,
    }

    if options.run_as:
        if options.is_callable:
            raise InvalidOptions("run_as cannot be combined with a callable command")
        update["command"] = sudo_command(options.command, options.run_as, environment)
        update["run_as"] = None

    return options.model_copy(update=update)


def _blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, (str, bytes, dict, list)) and not value


def display_options(options: SpawnOptions, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Options as shown in error messages: injected defaults and blanks dropped."""
    settings = settings or get_settings()
    shown = options.model_dump(exclude={"command"})
    environment = dict(shown["environment"])
    for name in ("LC_ALL", *settings.tooling_env_vars):
        environment.pop(name, None)
    shown["environment"] = environment
    return {key: value for key, value in shown.items() if not _blank(value)}


__all__ = [
    "build_environment",
    "display_options",
    "normalize_options",
    "resolve_group",
    "resolve_umask",
    "resolve_user",
    "sudo_command",
]
