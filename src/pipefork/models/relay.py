"""Failure record carried over the exception relay."""

from __future__ import annotations

import builtins
import os

from pydantic import BaseModel, ConfigDict


class RelayedFailure(BaseModel):
    """A failure the child hit before reaching exec."""

    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    errno: int | None = None
    strerror: str | None = None
    filename: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "RelayedFailure":
        if isinstance(exc, OSError):
            filename = exc.filename
            if filename is not None and not isinstance(filename, str):
                filename = os.fsdecode(filename) if isinstance(filename, bytes) else str(filename)
            return cls(
                kind=type(exc).__name__,
                message=str(exc),
                errno=exc.errno,
                strerror=exc.strerror,
                filename=filename,
            )
        return cls(kind=type(exc).__name__, message=str(exc))

    def to_exception(self) -> BaseException:
        """Rebuild the closest native exception.

        Builtin OSError subclasses keep their errno; anything unknown becomes a
        RuntimeError naming the original kind.
        """
        cls = getattr(builtins, self.kind, None)
        if isinstance(cls, type) and issubclass(cls, OSError) and self.errno is not None:
            if self.filename is not None:
                return cls(self.errno, self.strerror or self.message, self.filename)
            return cls(self.errno, self.strerror or self.message)
        if isinstance(cls, type) and issubclass(cls, Exception):
            try:
                return cls(self.message)
            except TypeError:
                pass
        return RuntimeError(f"{self.kind}: {self.message}")


__all__ = ["RelayedFailure"]
