"""Exception relay: one failure record from child to parent, or nothing.

The child writes a JSON-encoded :class:`RelayedFailure` when it cannot reach
exec. When exec succeeds the kernel closes the close-on-exec write end, so the
parent reads EOF with no bytes, which is the success signal.
"""

from __future__ import annotations

import logging
import os
from typing import BinaryIO, Optional

from pydantic import ValidationError

from ..exceptions import PreExecFailure, RelayCorruption
from ..models import RelayedFailure, SpawnOptions

logger = logging.getLogger(__name__)


def send_failure(fd: int, exc: BaseException) -> None:
    """Serialize ``exc`` onto the relay fd and close it (child side)."""
    payload = memoryview(RelayedFailure.from_exception(exc).model_dump_json().encode())
    try:
        while payload:
            written = os.write(fd, payload)
            payload = payload[written:]
    finally:
        os.close(fd)


def await_success(relay: BinaryIO, options: Optional[SpawnOptions] = None) -> None:
    """Block until the child execs or reports a failure (parent side).

    Raises:
        PreExecFailure: The child relayed a failure record
        RelayCorruption: The relay could not be read or did not hold a record
    """
    try:
        data = relay.read()
    except OSError as e:
        raise RelayCorruption(f"exception relay unreadable: {e}") from e
    finally:
        relay.close()

    if not data:
        logger.debug("relay closed without data; child reached exec")
        return

    try:
        failure = RelayedFailure.model_validate_json(data)
    except ValidationError as e:
        raise RelayCorruption(f"exception relay carried {len(data)} unparsable bytes") from e

    logger.debug("child relayed pre-exec failure: %s: %s", failure.kind, failure.message)
    raise PreExecFailure(failure, options) from failure.to_exception()


__all__ = ["await_success", "send_failure"]
