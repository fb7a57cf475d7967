"""Process spawner: fork, bootstrap the child, wait for the relay verdict."""

from __future__ import annotations

import logging
import os
import signal
import sys
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from ..config import Settings, get_settings
from ..exceptions import PreExecFailure, RelayCorruption
from ..models import SpawnOptions
from .bootstrap import bootstrap
from .channels import ChannelSet
from .relay import await_success

logger = logging.getLogger(__name__)


@dataclass
class SpawnedProcess:
    """A child that reached exec, with the parent's ends of its pipes."""

    pid: int
    channels: ChannelSet
    options: SpawnOptions

    @property
    def stdin(self):
        return self.channels.stdin

    @property
    def stdout(self):
        return self.channels.stdout

    @property
    def stderr(self):
        return self.channels.stderr


@contextmanager
def quiet_fork() -> Iterator[None]:
    """Scope the process-wide tweaks needed around ``os.fork``.

    Flushes Python's std streams so buffered text is not written twice, and
    silences the fork-while-threaded DeprecationWarning. The warning filters
    are restored on every exit path.
    """
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            stream.flush()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        yield


def _reap(pid: int) -> None:
    try:
        os.waitpid(pid, 0)
    except ChildProcessError:
        logger.debug("child %d already reaped", pid)


def spawn(options: SpawnOptions, settings: Optional[Settings] = None) -> SpawnedProcess:
    """Fork a child running ``options.command``.

    Returns once the child has exec'd (or started its callable).

    Raises:
        PreExecFailure: The child failed before exec; it has been reaped
        RelayCorruption: The relay was unreadable; the child has been killed
    """
    settings = settings or get_settings()
    channels = ChannelSet.open()
    try:
        channels.prepare_for_fork()
        with quiet_fork():
            pid = os.fork()
    except BaseException:
        channels.close_all()
        raise

    if pid == 0:
        bootstrap(options, channels, settings)

    logger.debug("forked child %d for %s", pid, options.command_text())
    channels.parent_side()
    try:
        await_success(channels.relay_reader, options)
    except PreExecFailure:
        channels.close_all()
        _reap(pid)
        raise
    except RelayCorruption:
        channels.close_all()
        os.kill(pid, signal.SIGKILL)
        _reap(pid)
        raise

    return SpawnedProcess(pid=pid, channels=channels, options=options)


__all__ = ["SpawnedProcess", "quiet_fork", "spawn"]
