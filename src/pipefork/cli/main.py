"""pipefork CLI main entry point with global options."""

import logging

import click

from ..config import get_settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log spawn details to stderr")
@click.pass_context
def cli(ctx, verbose):
    """pipefork - run commands with captured output and pre-exec error relay."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )
    ctx.obj["settings"] = get_settings()


# Register commands at module level so tests can import cli with commands attached
from .commands.run import ok, output, run

cli.add_command(run)
cli.add_command(ok)
cli.add_command(output)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
