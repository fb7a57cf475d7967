"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from pipefork import config
from pipefork.cli import cli


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear cached settings before and after each test.

    Settings are read from PIPEFORK_* variables once and cached, so a test
    that monkeypatches the environment must not see a stale copy.
    """
    config.reset_settings()
    yield
    config.reset_settings()


@pytest.fixture
def fast_settings():
    """Settings with a short poll interval, installed globally."""
    settings = config.Settings(poll_interval=0.05)
    config.set_settings(settings)
    return settings


@pytest.fixture
def open_fds():
    """Return a callable counting this process's open file descriptors."""
    for candidate in ("/proc/self/fd", "/dev/fd"):
        fd_dir = Path(candidate)
        if fd_dir.is_dir():
            return lambda: len(os.listdir(fd_dir))
    pytest.skip("no fd directory to count open descriptors")


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner):
    """Helper to invoke the CLI with args and optional input.

    Usage:
        result = invoke(["run", "echo hi"])
        result = invoke(["run", "--input", "-", "--", "cat"], input_data="data")
    """

    def _invoke(args, input_data=None):
        return cli_runner.invoke(cli, args, input=input_data)

    return _invoke
