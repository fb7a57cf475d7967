"""Tests for the buffered-mode drain loop."""

import os
import resource
from unittest.mock import patch

import pytest

from pipefork import SpawnOptions, popen4
from pipefork.core import assemble, drain, spawn


def test_drain_collects_both_streams(fast_settings):
    process = spawn(SpawnOptions(command="cat; echo oops >&2"))
    with process.channels:
        status, out, err = drain(process, b"payload")

    assert status is None
    assert out == b"payload"
    assert err == b"oops\n"
    assert process.channels.stdin.closed

    result = assemble(process.pid, process.options, out, err)
    assert result.succeeded()


def test_drain_without_input_closes_stdin(fast_settings):
    process = spawn(SpawnOptions(command="cat"))
    with process.channels:
        status, out, err = drain(process)
    assert out == b""
    assert assemble(process.pid, process.options, out, err, status).succeeded()


def test_would_block_falls_back_to_exit_check(fast_settings):
    process = spawn(SpawnOptions(command="echo hi; echo there >&2"))

    # select keeps reporting EAGAIN; the loop must notice the exit and drain
    with patch("pipefork.core.multiplexer.selectors.DefaultSelector.select", side_effect=BlockingIOError):
        with process.channels:
            status, out, err = drain(process)

    assert status is not None
    assert out == b"hi\n"
    assert err == b"there\n"

    result = assemble(process.pid, process.options, out, err, status)
    assert result.returncode == 0


@pytest.fixture
def crowded_fd_table():
    """Hold more descriptors than select() can watch (FD_SETSIZE is 1024)."""
    wanted = 2048
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    if hard != resource.RLIM_INFINITY and hard < wanted:
        pytest.skip("hard RLIMIT_NOFILE too low to hold 1100 descriptors")
    if soft != resource.RLIM_INFINITY and soft < wanted:
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))

    fds = [os.open(os.devnull, os.O_RDONLY) for _ in range(1100)]
    yield fds
    for fd in fds:
        os.close(fd)
    resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))


def test_drain_with_descriptors_past_fd_setsize(fast_settings, crowded_fd_table):
    result = popen4(SpawnOptions(command="cat; echo err >&2", input=b"high fds"))
    assert result.stdout == b"high fds"
    assert result.stderr == b"err\n"
    assert result.succeeded()
