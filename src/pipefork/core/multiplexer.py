"""Buffered mode: feed stdin and drain stdout/stderr without deadlocking.

Both output pipes are non-blocking and watched with a selector using a bounded
wait, so a child that fills one stream while we wait on the other cannot stall
the loop. Input is written in chunks whenever the child's stdin is writable
and the pipe is closed once it runs out, which is the child's end-of-input.
"""

from __future__ import annotations

import logging
import os
import select
import selectors
from typing import Dict, Optional, Tuple

from ..config import Settings, get_settings
from .spawner import SpawnedProcess

logger = logging.getLogger(__name__)

# Atomic write size for pipes on every POSIX system
_WRITE_CHUNK = select.PIPE_BUF


def _read_available(fd: int, read_size: int) -> bytes:
    """Read until EOF or until the pipe would block."""
    chunks = []
    while True:
        try:
            chunk = os.read(fd, read_size)
        except BlockingIOError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def drain(
    process: SpawnedProcess,
    input: Optional[bytes] = None,
    settings: Optional[Settings] = None,
) -> Tuple[Optional[int], bytes, bytes]:
    """Collect everything the child writes to stdout and stderr.

    Args:
        process: Live child returned by spawn()
        input: Bytes to feed to the child's stdin before closing it
        settings: Poll interval and read size (default: global settings)

    Returns:
        (wait status or None, stdout bytes, stderr bytes). The status is only
        set when the child was reaped while draining.
    """
    settings = settings or get_settings()
    channels = process.channels
    status: Optional[int] = None

    buffers: Dict[int, bytearray] = {
        channels.stdout.fileno(): bytearray(),
        channels.stderr.fileno(): bytearray(),
    }
    stdout_fd, stderr_fd = list(buffers)
    open_fds = list(buffers)

    # epoll/poll where available; select() cannot watch fds past FD_SETSIZE
    with selectors.DefaultSelector() as selector:
        for fd in open_fds:
            os.set_blocking(fd, False)
            selector.register(fd, selectors.EVENT_READ)

        pending = memoryview(input) if input else None
        stdin_fd: Optional[int] = None
        if pending:
            stdin_fd = channels.stdin.fileno()
            os.set_blocking(stdin_fd, False)
            selector.register(stdin_fd, selectors.EVENT_WRITE)
        else:
            channels.close_stdin()

        while open_fds:
            try:
                ready = selector.select(settings.poll_interval)
            except BlockingIOError:
                # The child may have exited and closed its ends under us
                pid, wait_status = os.waitpid(process.pid, os.WNOHANG)
                if pid:
                    status = wait_status
                    for fd in open_fds:
                        buffers[fd] += _read_available(fd, settings.read_size)
                    open_fds = []
                continue

            for key, _ in ready:
                fd = key.fd
                if fd == stdin_fd:
                    try:
                        written = os.write(fd, pending[:_WRITE_CHUNK])
                        pending = pending[written:]
                    except BlockingIOError:
                        pass
                    except BrokenPipeError:
                        logger.debug("child %d closed stdin with %d bytes unread", process.pid, len(pending))
                        pending = None
                    if not pending:
                        selector.unregister(fd)
                        channels.close_stdin()
                        stdin_fd = None
                    continue

                try:
                    chunk = os.read(fd, settings.read_size)
                except BlockingIOError:
                    continue
                if chunk:
                    buffers[fd] += chunk
                else:
                    selector.unregister(fd)
                    open_fds.remove(fd)

    # Both streams are done; whatever input is left will never be read
    channels.close_stdin()

    logger.debug(
        "drained child %d: %d bytes stdout, %d bytes stderr",
        process.pid,
        len(buffers[stdout_fd]),
        len(buffers[stderr_fd]),
    )
    return status, bytes(buffers[stdout_fd]), bytes(buffers[stderr_fd])


__all__ = ["drain"]
