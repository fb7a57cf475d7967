"""Process spawning core: channels, child bootstrap, relay, drain, assembly."""

from .assembler import assemble, wait_for_exit
from .channels import ChannelSet, Pipe
from .engine import StreamHandler, popen4
from .multiplexer import drain
from .relay import await_success, send_failure
from .spawner import SpawnedProcess, quiet_fork, spawn

__all__ = [
    "ChannelSet",
    "Pipe",
    "SpawnedProcess",
    "StreamHandler",
    "assemble",
    "await_success",
    "drain",
    "popen4",
    "quiet_fork",
    "send_failure",
    "spawn",
    "wait_for_exit",
]
