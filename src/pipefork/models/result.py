"""Result model for a finished child process."""

from __future__ import annotations

import os
from pprint import pformat

from pydantic import BaseModel, ConfigDict

from ..exceptions import CommandFailed
from .options import SpawnOptions


class ProcessResult(BaseModel):
    """Outcome of one spawn: exit status, captured output and the options used.

    ``returncode`` follows the subprocess convention: a negative value is the
    number of the signal that terminated the child.
    """

    model_config = ConfigDict(frozen=True)

    pid: int
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""
    options: SpawnOptions

    @classmethod
    def from_wait_status(cls, pid: int, status: int, **fields) -> "ProcessResult":
        return cls(pid=pid, returncode=os.waitstatus_to_exitcode(status), **fields)

    @property
    def signal(self) -> int | None:
        """Signal that terminated the child, or None if it exited."""

        return -self.returncode if self.returncode < 0 else None

    def succeeded(self) -> bool:
        return self.returncode == 0

    def ensure_succeeded(self) -> "ProcessResult":
        """Return self, or raise CommandFailed carrying this result."""

        if not self.succeeded():
            from ..normalize import display_options

            raise CommandFailed(
                "unable to run command\n"
                f"command={self.options.command_text()}\n"
                f"options={pformat(display_options(self.options))}\n"
                f"output={self.stdout.decode(errors='replace')}\n"
                f"error={self.stderr.decode(errors='replace')}",
                self,
            )
        return self


__all__ = ["ProcessResult"]
