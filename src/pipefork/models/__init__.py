"""Pydantic models shared by the engine and its callers."""

from .options import Mode, SpawnOptions
from .relay import RelayedFailure
from .result import ProcessResult

__all__ = [
    "Mode",
    "ProcessResult",
    "RelayedFailure",
    "SpawnOptions",
]
