"""pipefork exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import ProcessResult, RelayedFailure, SpawnOptions


class PipeforkError(Exception):
    """Base class for every error raised by pipefork."""

    pass


class InvalidOptions(PipeforkError, ValueError):
    """Spawn options could not be normalized (unknown user, bad umask...)."""

    pass


class PreExecFailure(PipeforkError):
    """The child failed before the target program started running.

    The target never ran, so there is no captured output. The native
    exception rebuilt from the relayed record is chained as ``__cause__``.
    """

    def __init__(self, failure: "RelayedFailure", options: Optional["SpawnOptions"] = None):
        self.failure = failure
        self.options = options
        super().__init__(f"{failure.kind}: {failure.message}")

    @property
    def kind(self) -> str:
        return self.failure.kind

    @property
    def errno(self) -> Optional[int]:
        return self.failure.errno


class CommandFailed(PipeforkError):
    """The program ran but exited nonzero or was killed by a signal."""

    def __init__(self, message: str, result: "ProcessResult"):
        self.result = result
        super().__init__(message)


class RelayCorruption(PipeforkError):
    """The exception relay produced bytes that are not a failure record."""

    pass


__all__ = [
    "CommandFailed",
    "InvalidOptions",
    "PipeforkError",
    "PreExecFailure",
    "RelayCorruption",
]
