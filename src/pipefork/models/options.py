"""Spawn options model."""

from __future__ import annotations

import os
import shlex
from typing import Any, Callable, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Mode = Literal["buffered", "streaming"]


class SpawnOptions(BaseModel):
    """Everything needed to start one child process.

    ``command`` is a shell string, an argv list executed without a shell, or a
    callable run inside the forked child. ``environment`` is an overlay: a
    ``None`` value deletes the variable in the child.
    """

    model_config = ConfigDict(frozen=True)

    command: str | List[str] | Callable[..., Any]
    input: bytes | None = None
    mode: Mode = "buffered"
    cwd: str | None = None
    umask: int | str | None = None
    user: int | str | None = None
    group: int | str | None = None
    environment: Dict[str, str | None] = Field(default_factory=dict)
    run_as: str | None = None
    keep_tooling_env: bool = False

    @field_validator("command")
    @classmethod
    def command_not_empty(cls, v):
        """Reject empty commands; they can never be exec'd."""

        if isinstance(v, str) and not v.strip():
            raise ValueError("Command cannot be empty or whitespace")
        if isinstance(v, list) and not v:
            raise ValueError("Command must include at least one argument")
        return v

    @field_validator("cwd", mode="before")
    @classmethod
    def fspath_cwd(cls, v):
        if isinstance(v, os.PathLike):
            return os.fspath(v)
        return v

    @property
    def is_callable(self) -> bool:
        return callable(self.command)

    def command_text(self) -> str:
        """Human readable form of the command."""

        if isinstance(self.command, str):
            return self.command
        if isinstance(self.command, list):
            return shlex.join(self.command)
        return repr(self.command)


__all__ = ["Mode", "SpawnOptions"]
