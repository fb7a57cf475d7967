"""Commands that run a program: run, ok, output."""

import sys

import click
from pydantic import ValidationError

from ...config import parse_key_value_pairs
from ...exceptions import InvalidOptions, PreExecFailure
from ...shell import Shell

# Conventional shell status for "command not found / could not execute"
PRE_EXEC_EXIT_CODE = 127


def _id_or_name(value):
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def build_shell(ctx, command, input_text, cwd, umask, user, group, env_items, unset, run_as, keep_tooling_env, stream, use_shell):
    """Turn CLI arguments into a Shell."""
    try:
        environment = dict(parse_key_value_pairs(list(env_items)))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--env")
    for key in unset:
        environment[key] = None

    if input_text == "-":
        input_bytes = click.get_binary_stream("stdin").read()
    elif input_text is not None:
        input_bytes = input_text.encode()
    else:
        input_bytes = None

    if use_shell or len(command) == 1:
        cmd = " ".join(command)
    else:
        cmd = list(command)

    try:
        return Shell(
            cmd,
            settings=ctx.obj["settings"],
            input=input_bytes,
            cwd=cwd,
            umask=umask,
            user=_id_or_name(user),
            group=_id_or_name(group),
            environment=environment,
            run_as=run_as,
            keep_tooling_env=keep_tooling_env,
            mode="streaming" if stream else "buffered",
        )
    except ValidationError as e:
        raise click.UsageError("; ".join(error["msg"] for error in e.errors()))


def spawn_options(func):
    """Attach the spawn options shared by every command."""
    decorators = [
        click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED),
        click.option("--input", "input_text", help="Text fed to stdin ('-' reads our stdin)"),
        click.option("--cwd", type=click.Path(file_okay=False), help="Working directory for the command"),
        click.option("--umask", help="Octal file creation mask, e.g. 022"),
        click.option("--user", help="User name or uid to run as"),
        click.option("--group", help="Group name or gid to run as"),
        click.option("--env", "env_items", multiple=True, help="KEY=VALUE to set (repeatable)"),
        click.option("--unset", multiple=True, help="Variable to remove (repeatable)"),
        click.option("--as", "run_as", help="Run through sudo as this user"),
        click.option("--keep-tooling-env", is_flag=True, help="Keep PYTHONPATH, VIRTUAL_ENV and friends"),
        click.option("--stream", is_flag=True, help="Read the pipes directly instead of multiplexing"),
        click.option("--shell", "use_shell", is_flag=True, help="Join COMMAND and run it through the shell"),
        click.pass_context,
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _execute(shell):
    try:
        return shell.execute()
    except PreExecFailure as e:
        click.echo(f"pipefork: {e}", err=True)
        sys.exit(PRE_EXEC_EXIT_CODE)
    except InvalidOptions as e:
        raise click.UsageError(str(e))


@click.command(context_settings=dict(ignore_unknown_options=True))
@spawn_options
def run(ctx, **kwargs):
    """Run COMMAND, echo its output and exit with its status.

    A single COMMAND argument goes through the shell; several are executed
    directly. Use -- before commands that take their own options.

    Examples:
        pipefork run 'echo hello && exit 3'
        pipefork run --cwd /tmp -- ls -la
        pipefork run --env GREETING=hi --input - -- cat
    """
    result = _execute(build_shell(ctx, **kwargs))
    click.echo(result.stdout, nl=False)
    click.echo(result.stderr, nl=False, err=True)
    code = result.returncode
    sys.exit(code if code >= 0 else 128 + result.signal)


@click.command(context_settings=dict(ignore_unknown_options=True))
@spawn_options
def ok(ctx, **kwargs):
    """Exit 0 if COMMAND succeeds, 1 otherwise. Prints nothing."""
    result = _execute(build_shell(ctx, **kwargs))
    sys.exit(0 if result.succeeded() else 1)


@click.command(context_settings=dict(ignore_unknown_options=True))
@spawn_options
def output(ctx, **kwargs):
    """Print COMMAND's stdout (trailing newline removed), or nothing on failure."""
    shell = build_shell(ctx, **kwargs)
    try:
        text = shell.output()
    except PreExecFailure as e:
        click.echo(f"pipefork: {e}", err=True)
        sys.exit(PRE_EXEC_EXIT_CODE)
    except InvalidOptions as e:
        raise click.UsageError(str(e))
    if text:
        click.echo(text)
