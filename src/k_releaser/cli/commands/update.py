"""Implementation of the 'update' command.

The update command computes the next version from the commits since
the last release tag, then rewrites the changelog and version files.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from k_releaser.config import load_config
from k_releaser.core.changelog import ChangelogDocument
from k_releaser.core.release import NoReleaseNeeded, synthesize
from k_releaser.exceptions import KReleaserError
from k_releaser.project.pyproject import write_version
from k_releaser.vcs import GitRepository

if TYPE_CHECKING:
    from rich.console import Console

logger = logging.getLogger(__name__)


def write_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` in one step.

    The text goes to a temporary file in the same directory, which is
    then renamed over the target, so readers never see a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_changelog(path: Path) -> ChangelogDocument:
    """Load the changelog at ``path``; a missing file is an empty changelog."""
    text = path.read_text(encoding="utf-8") if path.is_file() else ""
    return ChangelogDocument.parse(text, path)


def run_update(
    path: str | None,
    execute: bool,
    console: Console,
    err_console: Console,
    release_date: date | None = None,
) -> None:
    """Run the update command.

    Args:
        path: Optional path to project directory
        execute: Whether to actually apply changes
        console: Console for standard output
        err_console: Console for error output
        release_date: Date for the changelog heading, today if omitted
    """
    project_path = Path(path) if path else Path.cwd()

    try:
        config = load_config(project_path)
        repo = GitRepository(project_path)
        dirty = not config.allow_dirty and repo.is_dirty()
    except KReleaserError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    if dirty:
        err_console.print(
            "[red]Error:[/] Repository has uncommitted changes.\n"
            "Commit or stash them, or use [cyan]allow_dirty = true[/] in config."
        )
        raise SystemExit(1)

    changelog_path = project_path / config.changelog_path

    try:
        latest = repo.get_latest_release(config.tag_template)
        last_tag, last_version = latest if latest else (None, None)
        boundary = repo.rev_parse(last_tag) if last_tag else None
        commits = repo.get_commits_since_tag(last_tag)
        if config.changelog.enabled:
            changelog = read_changelog(changelog_path)
        else:
            changelog = ChangelogDocument.parse("")
        outcome = synthesize(
            last_version,
            boundary,
            commits,
            changelog,
            config=config,
            release_date=release_date or date.today(),
        )
    except KReleaserError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    if isinstance(outcome, NoReleaseNeeded):
        console.print(f"[yellow]{outcome.reason}. Nothing to do.[/]")
        return

    plan = outcome
    mode_str = "[green]EXECUTING[/]" if execute else "[yellow]DRY-RUN[/]"
    if plan.is_first_release:
        console.print(
            f"\n{mode_str} - First release! Setting version to [green]{plan.next_version}[/]\n"
        )
    else:
        console.print(
            f"\n{mode_str} - Updating from [cyan]{plan.previous_version}[/] "
            f"to [green]{plan.next_version}[/] ({plan.bump} bump)\n"
        )

    if not execute:
        changes = [
            f"  • Set version {plan.next_version} in [cyan]{f}[/]"
            for f in config.version.version_files
        ]
        if config.changelog.enabled and plan.changelog_updated:
            changes.append(f"  • Add release section to [cyan]{config.changelog_path}[/]")
        console.print(
            Panel(
                "[bold]Would make the following changes:[/]\n\n"
                + "\n".join(changes or ["  (none)"]),
                title="[yellow]Dry Run Preview[/]",
                border_style="yellow",
            )
        )
        console.print(Panel(Text(plan.section_text.rstrip()), title="Changelog section"))
        console.print("\n[dim]Run with [cyan]--execute[/] to apply these changes.[/]")
        return

    try:
        for version_file in config.version.version_files:
            if write_version(project_path / version_file, str(plan.next_version)):
                console.print(f"  [green]✓[/] Updated version in {version_file}")
            else:
                console.print(f"  [dim]{version_file} already at {plan.next_version}[/]")

        if not config.changelog.enabled:
            logger.info("Changelog disabled, skipping %s", config.changelog_path)
        elif plan.changelog_updated:
            write_atomic(changelog_path, plan.changelog.to_text())
            console.print(f"  [green]✓[/] Updated {config.changelog_path}")
        else:
            console.print(
                f"  [dim]{config.changelog_path} already contains {plan.next_version}[/]"
            )
    except (KReleaserError, OSError) as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    console.print(
        Panel(
            f"[green]Successfully updated to version {plan.next_version}![/]\n\n"
            "Next steps:\n"
            "  1. Review the changes\n"
            f"  2. Commit: [cyan]git add . && git commit -m "
            f"'chore(release): prepare {plan.next_version}'[/]\n"
            "  3. Release: [cyan]k-releaser release --execute[/]",
            title="[green]Update Complete[/]",
            border_style="green",
        )
    )
