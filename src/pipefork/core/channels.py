"""The four pipes shared between parent and child.

``input``, ``output`` and ``error`` become the child's fds 0, 1 and 2. The
``relay`` pipe carries a pre-exec failure from the child, and its write end is
close-on-exec so a successful exec shows up in the parent as a bare EOF.

All eight ends exist before fork. Afterwards each side closes the ends it does
not own, exactly once, through :meth:`ChannelSet.child_side` or
:meth:`ChannelSet.parent_side`.
"""

from __future__ import annotations

import fcntl
import os
import sys
from dataclasses import dataclass
from typing import BinaryIO, Optional

STDIO_FDS = (0, 1, 2)


def _max_fd() -> int:
    try:
        maxfd = os.sysconf("SC_OPEN_MAX")
    except (AttributeError, ValueError):
        return 256
    return maxfd if maxfd > 0 else 256


@dataclass
class Pipe:
    """One pipe; an end is None once closed or handed off."""

    read_fd: Optional[int]
    write_fd: Optional[int]

    @classmethod
    def open(cls) -> "Pipe":
        read_fd, write_fd = os.pipe()
        return cls(read_fd, write_fd)

    def close_read(self) -> None:
        if self.read_fd is not None:
            fd, self.read_fd = self.read_fd, None
            os.close(fd)

    def close_write(self) -> None:
        if self.write_fd is not None:
            fd, self.write_fd = self.write_fd, None
            os.close(fd)

    def close(self) -> None:
        self.close_read()
        self.close_write()


class ChannelSet:
    """Owns the input/output/error/relay pipes of one invocation."""

    def __init__(self, input: Pipe, output: Pipe, error: Pipe, relay: Pipe):
        self.input = input
        self.output = output
        self.error = error
        self.relay = relay
        self._side: Optional[str] = None

        # Parent-side file objects, set by parent_side()
        self.stdin: Optional[BinaryIO] = None
        self.stdout: Optional[BinaryIO] = None
        self.stderr: Optional[BinaryIO] = None
        self.relay_reader: Optional[BinaryIO] = None

    @classmethod
    def open(cls) -> "ChannelSet":
        """Create the four pipes, closing any already made if one fails."""
        pipes: list[Pipe] = []
        try:
            for _ in range(4):
                pipes.append(Pipe.open())
        except OSError:
            for pipe in pipes:
                pipe.close()
            raise
        return cls(*pipes)

    @property
    def pipes(self) -> tuple[Pipe, ...]:
        return (self.input, self.output, self.error, self.relay)

    @property
    def side(self) -> Optional[str]:
        return self._side

    def prepare_for_fork(self) -> None:
        """Mark the relay write end close-on-exec."""
        os.set_inheritable(self.relay.write_fd, False)

    def _claim(self, side: str) -> None:
        if self._side is not None:
            raise RuntimeError(f"channels already set up for the {self._side} side")
        self._side = side

    def child_side(self) -> int:
        """Remap fds 0/1/2 onto the pipes and close everything else.

        Runs in the forked child only. Returns the relay write fd, which is the
        one end the child keeps besides its stdio.
        """
        self._claim("child")

        self.input.close_write()
        self.output.close_read()
        self.error.close_read()
        self.relay.close_read()

        remaps = ((self.input, "read_fd", 0), (self.output, "write_fd", 1), (self.error, "write_fd", 2))

        # A pipe end sitting on another stream's stdio slot would be clobbered
        for pipe, attr, target in remaps:
            fd = getattr(pipe, attr)
            if fd in STDIO_FDS and fd != target:
                setattr(pipe, attr, fcntl.fcntl(fd, fcntl.F_DUPFD, 3))

        for pipe, attr, target in remaps:
            fd = getattr(pipe, attr)
            if fd == target:
                os.set_inheritable(fd, True)
            else:
                os.dup2(fd, target)

        # Originals that did not land on a stdio slot are no longer needed
        for pipe, attr, _ in remaps:
            fd = getattr(pipe, attr)
            setattr(pipe, attr, None)
            if fd not in STDIO_FDS:
                os.close(fd)

        # Everything else inherited from the parent, other invocations' pipes
        # included, would otherwise stay open in a child that never execs
        relay_fd = self.relay.write_fd
        os.closerange(3, relay_fd)
        os.closerange(max(3, relay_fd + 1), _max_fd())

        sys.stdin = open(0, "r", closefd=False)
        sys.stdout = open(1, "w", buffering=1, closefd=False)
        sys.stderr = open(2, "w", buffering=1, closefd=False)

        return self.relay.write_fd

    def parent_side(self) -> None:
        """Close the child's ends and wrap ours in binary file objects."""
        self._claim("parent")

        self.input.close_read()
        self.output.close_write()
        self.error.close_write()
        self.relay.close_write()

        self.stdin = os.fdopen(self._hand_off(self.input, "write_fd"), "wb", buffering=0)
        self.stdout = os.fdopen(self._hand_off(self.output, "read_fd"), "rb")
        self.stderr = os.fdopen(self._hand_off(self.error, "read_fd"), "rb")
        self.relay_reader = os.fdopen(self._hand_off(self.relay, "read_fd"), "rb")

    @staticmethod
    def _hand_off(pipe: Pipe, attr: str) -> int:
        fd = getattr(pipe, attr)
        setattr(pipe, attr, None)
        return fd

    def close_stdin(self) -> None:
        """Signal end-of-input to the child."""
        if self.stdin is not None:
            self.stdin.close()

    def close_relay(self) -> None:
        if self.relay_reader is not None:
            self.relay_reader.close()

    def close_all(self) -> None:
        """Close every end still open on this side. Safe to call repeatedly."""
        for stream in (self.stdin, self.stdout, self.stderr, self.relay_reader):
            if stream is not None:
                stream.close()
        for pipe in self.pipes:
            pipe.close()

    def __enter__(self) -> "ChannelSet":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close_all()


__all__ = ["ChannelSet", "Pipe"]
