"""Unit tests for spawn option normalization."""

import os
import pwd

import pytest

from pipefork import InvalidOptions, SpawnOptions
from pipefork.config import Settings
from pipefork.normalize import (
    build_environment,
    display_options,
    normalize_options,
    resolve_group,
    resolve_umask,
    resolve_user,
    sudo_command,
)

SETTINGS = Settings(tooling_env_vars=("PYTHONPATH", "VIRTUAL_ENV"))


def test_locale_forced_by_default():
    env = build_environment(SpawnOptions(command="true"), SETTINGS)
    assert env["LC_ALL"] == "C"


def test_caller_lc_all_wins_even_when_none():
    env = build_environment(SpawnOptions(command="true", environment={"LC_ALL": None}), SETTINGS)
    assert env["LC_ALL"] is None


def test_tooling_vars_deleted_by_default():
    env = build_environment(SpawnOptions(command="true"), SETTINGS)
    assert env["PYTHONPATH"] is None
    assert env["VIRTUAL_ENV"] is None


def test_tooling_vars_kept_on_opt_out():
    env = build_environment(SpawnOptions(command="true", keep_tooling_env=True), SETTINGS)
    assert "PYTHONPATH" not in env
    assert "VIRTUAL_ENV" not in env


def test_explicit_tooling_value_wins():
    env = build_environment(SpawnOptions(command="true", environment={"PYTHONPATH": "/opt"}), SETTINGS)
    assert env["PYTHONPATH"] == "/opt"


def test_resolve_user_and_group():
    root = pwd.getpwuid(0)
    assert resolve_user(root.pw_name) == 0
    assert resolve_user(1000) == 1000
    assert resolve_user(None) is None
    assert resolve_group(os.getgid()) == os.getgid()


def test_unknown_user_and_group():
    with pytest.raises(InvalidOptions, match="Unknown user"):
        resolve_user("no-such-user-pipefork")
    with pytest.raises(InvalidOptions, match="Unknown group"):
        resolve_group("no-such-group-pipefork")


def test_resolve_umask():
    assert resolve_umask("022") == 0o22
    assert resolve_umask(0o77) == 0o77
    assert resolve_umask(0o107777) == 0o7777
    assert resolve_umask(None) is None
    with pytest.raises(InvalidOptions):
        resolve_umask("89")


def test_invalid_options_is_a_value_error():
    assert issubclass(InvalidOptions, ValueError)


def test_sudo_command():
    cmd = sudo_command("whoami", "deploy", {"LC_ALL": "C", "GONE": None, "MSG": "a b"})
    assert cmd == "sudo -H -u deploy env LC_ALL=C MSG='a b' whoami"


def test_sudo_command_quotes_argv():
    cmd = sudo_command(["echo", "a b"], "deploy", {})
    assert cmd == "sudo -H -u deploy echo 'a b'"


def test_normalize_run_as():
    options = normalize_options(SpawnOptions(command="id -u", run_as="deploy"), SETTINGS)
    assert options.command.startswith("sudo -H -u deploy env LC_ALL=C ")
    assert options.command.endswith(" id -u")
    assert options.run_as is None


def test_normalize_run_as_rejects_callables():
    with pytest.raises(InvalidOptions):
        normalize_options(SpawnOptions(command=lambda: 0, run_as="deploy"), SETTINGS)


def test_normalize_is_idempotent():
    once = normalize_options(SpawnOptions(command="ls", umask="027", run_as="deploy"), SETTINGS)
    twice = normalize_options(once, SETTINGS)
    assert once == twice
    assert once.umask == 0o27


def test_normalize_leaves_original_untouched():
    original = SpawnOptions(command="ls")
    normalize_options(original, SETTINGS)
    assert original.environment == {}


def test_display_options_hides_injected_defaults():
    options = normalize_options(
        SpawnOptions(command="ls", cwd="/tmp", environment={"FOO": "bar"}, umask=0),
        SETTINGS,
    )
    shown = display_options(options, SETTINGS)
    assert shown["environment"] == {"FOO": "bar"}
    assert shown["cwd"] == "/tmp"
    assert shown["umask"] == 0
    assert "command" not in shown
    assert "input" not in shown
    assert "keep_tooling_env" not in shown
