"""Tests for the exception relay protocol."""

import errno
import os

import pytest

from pipefork import PreExecFailure, RelayCorruption, SpawnOptions
from pipefork.core import await_success, send_failure


@pytest.fixture
def relay_pipe():
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    yield reader, write_fd
    reader.close()


def test_eof_without_bytes_is_success(relay_pipe):
    reader, write_fd = relay_pipe
    os.close(write_fd)
    assert await_success(reader) is None
    assert reader.closed


def test_relayed_failure_raises_pre_exec_failure(relay_pipe):
    reader, write_fd = relay_pipe
    send_failure(write_fd, FileNotFoundError(errno.ENOENT, "No such file or directory", "missing-tool"))
    options = SpawnOptions(command=["missing-tool"])

    with pytest.raises(PreExecFailure) as excinfo:
        await_success(reader, options)

    failure = excinfo.value
    assert failure.kind == "FileNotFoundError"
    assert failure.errno == errno.ENOENT
    assert failure.options is options
    assert isinstance(failure.__cause__, FileNotFoundError)
    assert failure.__cause__.filename == "missing-tool"
    assert reader.closed


def test_send_failure_closes_fd(relay_pipe):
    _, write_fd = relay_pipe
    send_failure(write_fd, ValueError("nope"))
    with pytest.raises(OSError):
        os.fstat(write_fd)


def test_garbage_is_relay_corruption(relay_pipe):
    reader, write_fd = relay_pipe
    os.write(write_fd, b"\x04\x08not a record")
    os.close(write_fd)

    with pytest.raises(RelayCorruption):
        await_success(reader)
    assert reader.closed
