"""Child-side bootstrap: everything that happens between fork and exec.

Only ever runs in the forked child, and never returns: the process image is
either replaced by exec or the child leaves through ``os._exit``. Nothing here
may log or run ``atexit`` hooks, since those belong to the parent.
"""

from __future__ import annotations

import os
import signal
import sys
import traceback
from typing import Any, Callable, List, Mapping, NoReturn, Optional

from ..config import Settings
from ..models import SpawnOptions
from .channels import ChannelSet
from .relay import send_failure

# Exit status of a child that relayed a failure. The relay, not this code,
# tells the parent what happened.
RELAY_EXIT_STATUS = 1

# Python ignores SIGPIPE and the exec'd program would inherit that
_RESET_SIGNALS = ("SIGPIPE", "SIGXFSZ")


def reset_signals() -> None:
    for name in _RESET_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, signal.SIG_DFL)


def switch_identity(group: Optional[int], user: Optional[int]) -> None:
    """Switch group before user; once the uid is dropped setgid is refused."""
    if group is not None:
        os.setgid(group)
    if user is not None:
        os.setuid(user)


def apply_environment(overlay: Mapping[str, Optional[str]]) -> None:
    for key, value in overlay.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


def apply_umask(value: Optional[int]) -> None:
    if value is not None:
        os.umask(value & 0o7777)


def exit_status(value: Any) -> int:
    """Coerce a callable command's return value to an exit status.

    Only the low byte of a status reaches the parent, as with any process.
    A nonzero value whose low byte is zero (256, 512, ...) becomes 1 rather
    than passing for success.
    """
    if value is None:
        return 0
    status = int(value)
    if status == 0:
        return 0
    return status & 0xFF or 1


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            # The child's stdio may already be gone; nothing left to report to
            pass


def run_callable(func: Callable[[], Any]) -> int:
    try:
        return exit_status(func())
    except SystemExit as e:
        if e.code is None or isinstance(e.code, int):
            return exit_status(e.code)
        print(e.code, file=sys.stderr)
        return 1
    except BaseException:
        traceback.print_exc()
        return 1


# A string with none of these is split on whitespace and exec'd directly, so
# a missing program is reported before exec instead of as the shell's 127
_SHELL_METACHARACTERS = frozenset("*?{}[]<>()~&|\\$;'`\"\n#=%")

# Reserved words and builtins that only exist inside a shell
_SHELL_ONLY_COMMANDS = frozenset(
    [
        "!", ".", ":", "alias", "bg", "break", "case", "cd", "command", "continue",
        "do", "done", "elif", "else", "esac", "eval", "exec", "exit", "export",
        "fg", "fi", "for", "getopts", "hash", "if", "in", "jobs", "read",
        "readonly", "return", "set", "shift", "then", "times", "trap", "type",
        "ulimit", "umask", "unalias", "unset", "until", "wait", "while",
    ]
)


def direct_argv(command: str) -> Optional[List[str]]:
    """Return the argv for a string that needs no shell, else None."""
    if _SHELL_METACHARACTERS.intersection(command):
        return None
    argv = command.split()
    if not argv or argv[0] in _SHELL_ONLY_COMMANDS:
        return None
    return argv


def execute(command, settings: Settings) -> NoReturn:
    """Replace the process image with the command."""
    if isinstance(command, str):
        command = direct_argv(command) or command
    if isinstance(command, list):
        os.execvp(command[0], command)
    else:
        os.execv(settings.shell, [settings.shell, "-c", command])


def bootstrap(options: SpawnOptions, channels: ChannelSet, settings: Settings) -> NoReturn:
    """Set up the child and exec the command; relay any failure on the way."""
    status = RELAY_EXIT_STATUS
    relay_fd = channels.relay.write_fd
    try:
        relay_fd = channels.child_side()
        reset_signals()
        switch_identity(options.group, options.user)
        apply_environment(options.environment)
        apply_umask(options.umask)
        if options.cwd:
            os.chdir(options.cwd)

        if options.is_callable:
            # Calling the function is this child's exec
            channels.relay.close_write()
            relay_fd = None
            status = run_callable(options.command)
        else:
            execute(options.command, settings)
    except BaseException as e:
        if relay_fd is not None:
            try:
                send_failure(relay_fd, e)
            except OSError:
                # Parent went away; the nonzero exit is all that is left
                pass
    finally:
        _flush_std_streams()
        os._exit(status)
