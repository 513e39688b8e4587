"""Command line entry point."""

from __future__ import annotations

import click
from rich.console import Console

from k_releaser import __version__
from k_releaser.cli.commands.release import run_release
from k_releaser.cli.commands.update import run_update
from k_releaser.log import setup_logging

console = Console()
err_console = Console(stderr=True)

path_option = click.option(
    "--path",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Project directory (defaults to the current directory).",
)


@click.group()
@click.version_option(version=__version__, prog_name="k-releaser")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """k-releaser - version bumps and changelogs from conventional commits."""
    setup_logging(verbose, err_console)


@main.command()
@path_option
@click.option("--execute", is_flag=True, help="Apply the changes instead of previewing them.")
def update(path: str | None, execute: bool) -> None:
    """Bump the version and update the changelog from commits since the last tag."""
    run_update(path, execute, console, err_console)


@main.command()
@path_option
@click.option("--execute", is_flag=True, help="Create the tag instead of previewing it.")
@click.option("--push/--no-push", default=True, help="Push the tag to the remote.")
def release(path: str | None, execute: bool, push: bool) -> None:
    """Tag the version most recently added to the changelog."""
    run_release(path, execute, push, console, err_console)


if __name__ == "__main__":
    main()
