"""Shell: run/ok/output convenience over popen4.

Examples:
    sh("echo hello").output()               # "hello"
    sh("ls", "-l", cwd="/tmp").run()         # raises CommandFailed on nonzero exit
    sh("test -d /tmp").ok()                  # True
    sh_keep_env("python", "-c", "...").run() # keeps PYTHONPATH and friends
"""

from __future__ import annotations

from contextlib import suppress
from typing import Any, Optional, Tuple

from .config import Settings
from .core import SpawnedProcess, popen4
from .models import ProcessResult, SpawnOptions


class Shell:
    """A command plus its spawn options, ready to execute."""

    def __init__(self, command: Any, settings: Optional[Settings] = None, **options: Any):
        self.options = SpawnOptions(command=command, **options)
        self.settings = settings

    def __repr__(self) -> str:
        return f"Shell({self.options.command_text()!r})"

    def _collect(self, process: SpawnedProcess) -> Tuple[bytes, bytes]:
        """Write all input, then read stdout to EOF, then stderr to EOF.

        Blocking and sequential: a child that fills the stderr pipe buffer
        before closing stdout, or echoes back more input than a pipe buffer
        holds before reading the rest, deadlocks here. Use buffered mode for
        such commands.
        """
        if self.options.input:
            with suppress(BrokenPipeError):
                process.stdin.write(self.options.input)
        process.channels.close_stdin()
        return process.stdout.read(), process.stderr.read()

    def execute(self) -> ProcessResult:
        """Run the command and return its result, successful or not."""
        handler = self._collect if self.options.mode == "streaming" else None
        return popen4(self.options, handler, self.settings)

    def run(self) -> ProcessResult:
        """Run the command, raising CommandFailed unless it succeeds."""
        return self.execute().ensure_succeeded()

    def ok(self) -> bool:
        """Run the command, returning True if it succeeds."""
        return self.execute().succeeded()

    def output(self) -> str:
        """Run the command and return its stdout without the trailing newline.

        Returns "" if the command does not succeed.
        """
        result = self.execute()
        if not result.succeeded():
            return ""
        text = result.stdout.decode()
        return text[:-1] if text.endswith("\n") else text

    def __str__(self) -> str:
        return self.output()


def sh(*args: Any, **options: Any) -> Shell:
    """Build a Shell: one argument is the command, several form an argv list."""
    if not args:
        raise TypeError("sh() requires a command")
    command = args[0] if len(args) == 1 else list(args)
    return Shell(command, **options)


def sh_keep_env(*args: Any, **options: Any) -> Shell:
    """Like sh(), but the child keeps the parent's tooling variables."""
    options["keep_tooling_env"] = True
    return sh(*args, **options)


__all__ = ["Shell", "sh", "sh_keep_env"]
