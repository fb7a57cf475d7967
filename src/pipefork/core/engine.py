"""popen4: spawn a command and collect its outcome in one call."""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from ..config import Settings, get_settings
from ..models import ProcessResult, SpawnOptions
from ..normalize import normalize_options
from .assembler import assemble, wait_for_exit
from .multiplexer import drain
from .spawner import SpawnedProcess, spawn

StreamHandler = Callable[[SpawnedProcess], Optional[Tuple[bytes, bytes]]]


def popen4(
    options: SpawnOptions,
    handler: Optional[StreamHandler] = None,
    settings: Optional[Settings] = None,
) -> ProcessResult:
    """Run a command to completion.

    Buffered mode (default) drains stdout/stderr itself. Streaming mode hands
    the live process to ``handler``, which owns the pipes until it returns;
    it may return ``(stdout, stderr)`` to be recorded in the result.

    Raises:
        PreExecFailure: The command could not be started
        ValueError: A handler was given in buffered mode or missing in streaming mode
    """
    settings = settings or get_settings()
    if options.mode == "streaming" and handler is None:
        raise ValueError("streaming mode requires a handler")
    if options.mode == "buffered" and handler is not None:
        raise ValueError("handler is only used in streaming mode")

    options = normalize_options(options, settings)
    process = spawn(options, settings)

    try:
        with process.channels:
            if options.mode == "streaming":
                collected = handler(process)
                stdout, stderr = collected if collected is not None else (b"", b"")
                status = None
            else:
                status, stdout, stderr = drain(process, options.input, settings)
    except BaseException:
        # Our ends are closed, so a child still writing gets SIGPIPE
        wait_for_exit(process.pid)
        raise

    return assemble(process.pid, options, stdout, stderr, status)


__all__ = ["StreamHandler", "popen4"]
