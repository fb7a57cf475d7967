"""Wait for the child and build the immutable ProcessResult."""

from __future__ import annotations

import logging
import os
from typing import Optional

from ..models import ProcessResult, SpawnOptions

logger = logging.getLogger(__name__)


def wait_for_exit(pid: int) -> int:
    """Block until ``pid`` terminates; return its raw wait status."""
    _, status = os.waitpid(pid, 0)
    return status


def assemble(
    pid: int,
    options: SpawnOptions,
    stdout: bytes = b"",
    stderr: bytes = b"",
    status: Optional[int] = None,
) -> ProcessResult:
    """Build the result, waiting for the child first unless already reaped."""
    if status is None:
        status = wait_for_exit(pid)
    result = ProcessResult.from_wait_status(
        pid, status, stdout=stdout, stderr=stderr, options=options
    )
    logger.debug("child %d finished with returncode %d", pid, result.returncode)
    return result


__all__ = ["assemble", "wait_for_exit"]
