"""Implementation of the 'release' command.

The release command tags the version that the last ``update`` wrote to
the changelog, using the changelog section as the tag message.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from k_releaser.cli.commands.update import read_changelog
from k_releaser.config import load_config
from k_releaser.exceptions import KReleaserError
from k_releaser.vcs import GitRepository, tag_name

if TYPE_CHECKING:
    from rich.console import Console


def run_release(
    path: str | None,
    execute: bool,
    push: bool,
    console: Console,
    err_console: Console,
) -> None:
    """Run the release command.

    Args:
        path: Optional path to project directory
        execute: Whether to actually create the tag
        push: Push the new tag to the configured remote
        console: Console for standard output
        err_console: Console for error output
    """
    project_path = Path(path) if path else Path.cwd()

    try:
        config = load_config(project_path)
        repo = GitRepository(project_path)
        changelog = read_changelog(project_path / config.changelog_path)
        latest = repo.get_latest_release(config.tag_template)
    except KReleaserError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    version = changelog.latest_version()
    if version is None:
        console.print(
            f"[yellow]No released version in {config.changelog_path}. Nothing to do.[/]\n"
            "[dim]Run [cyan]k-releaser update --execute[/] first.[/]"
        )
        return

    tag = tag_name(config.tag_template, version)
    try:
        tagged = repo.tag_exists(tag)
        branch = repo.current_branch()
        dirty = not config.allow_dirty and repo.is_dirty()
    except KReleaserError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    if tagged:
        console.print(f"[yellow]{version} is already tagged as {tag}. Nothing to do.[/]")
        return
    if latest is not None and latest[1] > version:
        err_console.print(
            f"[red]Error:[/] Changelog version {version} is older than the latest "
            f"release {latest[1]} ({latest[0]})."
        )
        raise SystemExit(1)

    if branch != config.default_branch:
        err_console.print(
            f"[red]Error:[/] Releases are tagged on [cyan]{config.default_branch}[/], "
            f"but the current branch is [cyan]{escape(branch)}[/]."
        )
        raise SystemExit(1)

    if dirty:
        err_console.print(
            "[red]Error:[/] Repository has uncommitted changes.\n"
            "Commit the release changes before tagging."
        )
        raise SystemExit(1)

    message = changelog.section_text(version) or f"Release {version}\n"

    if not execute:
        console.print(
            Panel(
                f"[bold]Would create tag[/] [cyan]{tag}[/]"
                + (f" and push it to [cyan]{config.remote}[/]" if push else ""),
                title="[yellow]Dry Run Preview[/]",
                border_style="yellow",
            )
        )
        console.print(Panel(Text(message.rstrip()), title="Tag message"))
        console.print("\n[dim]Run with [cyan]--execute[/] to create the tag.[/]")
        return

    try:
        repo.create_tag(tag, message)
        console.print(f"  [green]✓[/] Created tag {tag}")
        if push:
            repo.push_tag(tag, config.remote)
            console.print(f"  [green]✓[/] Pushed {tag} to {config.remote}")
    except KReleaserError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    console.print(f"\n[green]Released {version}![/]")
