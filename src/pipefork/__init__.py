"""pipefork: fork/exec with captured output and relayed pre-exec failures."""

from .core import SpawnedProcess, popen4, spawn
from .exceptions import (
    CommandFailed,
    InvalidOptions,
    PipeforkError,
    PreExecFailure,
    RelayCorruption,
)
from .models import ProcessResult, RelayedFailure, SpawnOptions
from .shell import Shell, sh, sh_keep_env

__all__ = [
    "CommandFailed",
    "InvalidOptions",
    "PipeforkError",
    "PreExecFailure",
    "ProcessResult",
    "RelayCorruption",
    "RelayedFailure",
    "Shell",
    "SpawnOptions",
    "SpawnedProcess",
    "__version__",
    "popen4",
    "sh",
    "sh_keep_env",
    "spawn",
]

__version__ = "0.0.1"
