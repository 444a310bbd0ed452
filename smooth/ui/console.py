"""Console construction, the background worker and shared renderers."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from pygments.lexers import DiffLexer
from rich import box
from rich.align import Align
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from ..core.models import (
    BackupInfo, BranchInfo, CommitInfo, DiffSummary, FileAction, FileChange,
    FileStatus, RepositoryStatus, SaveResult
)
from ..core.theme import Theme

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_MARKERS = {
    FileStatus.ADDED: ("+", "success"),
    FileStatus.MODIFIED: ("~", "accent"),
    FileStatus.DELETED: ("-", "error"),
    FileStatus.RENAMED: (">", "highlight"),
}

ACTION_STYLES = {
    FileAction.SAVE: "action.save",
    FileAction.REVERT: "action.revert",
    FileAction.SKIP_ONCE: "action.skip",
    FileAction.IGNORE: "action.ignore",
}


def make_console(theme: Theme, **kwargs: Any) -> Console:
    """One console per session, styled by the theme loaded at startup."""
    return Console(theme=theme.to_rich_theme(), **kwargs)


class BackgroundWorker:
    """Runs blocking repository calls off the UI thread, one at a time.

    A single worker thread means two git invocations never overlap.
    """

    def __init__(self, console: Console):
        self.console = console
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smooth-git")

    def run(self, message: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run fn on the worker while a spinner shows message; re-raise its errors."""
        future = self._executor.submit(fn, *args, **kwargs)
        with self.console.status(f"[accent]{message}[/accent]", spinner="dots"):
            return future.result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def render_header(console: Console, status: Optional[RepositoryStatus], subtitle: str = "") -> None:
    """Title panel with the branch line shown on every screen."""
    title = Text("smooth", style="title")
    if subtitle:
        title.append(f"  {subtitle}", style="subtitle")

    lines = [Align.center(title)]
    if status is not None:
        branch = Text("on ", style="muted")
        branch.append(status.branch, style="highlight")
        if status.on_experiment:
            branch.append("  (experiment)", style="accent")
        if status.has_changes:
            branch.append("  unsaved changes", style="accent")
        if not status.has_remote:
            branch.append("  no remote", style="muted")
        lines.append(Align.center(branch))

    console.print(Panel(Group(*lines), box=box.ROUNDED, style="border"))


def render_changes(console: Console, changes: Iterable[FileChange],
                   actions: Optional[Mapping[str, FileAction]] = None) -> None:
    """Numbered list of changed files, with the chosen action when reviewing."""
    table = Table(show_header=True, header_style="subtitle", box=box.SIMPLE)
    table.add_column("#", style="muted", width=3)
    table.add_column("", width=1)
    table.add_column("File", style="normal")
    if actions is not None:
        table.add_column("Action", width=15)

    for i, change in enumerate(changes, 1):
        marker, style = STATUS_MARKERS[change.status]
        row = [str(i), Text(marker, style=style), Text(change.path)]
        if actions is not None:
            action = actions.get(change.path, FileAction.SAVE)
            row.append(Text(action.label, style=ACTION_STYLES[action]))
        table.add_row(*row)

    console.print(table)


def render_diff(console: Console, path: str, diff: str) -> None:
    syntax = Syntax(diff, DiffLexer(), theme="ansi_dark", word_wrap=True, background_color="default")
    console.print(Panel(syntax, title=path, box=box.ROUNDED, style="border"))


def render_diff_summary(console: Console, summary: DiffSummary, title: str) -> None:
    if not summary.files:
        console.print("[muted]No file differences.[/muted]")
        return

    table = Table(title=title, show_header=True, header_style="subtitle", box=box.SIMPLE)
    table.add_column("File", style="normal")
    table.add_column("+", style="success", justify="right")
    table.add_column("-", style="error", justify="right")

    for stat in summary.files:
        if stat.is_binary:
            table.add_row(Text(stat.path), "bin", "bin")
            continue
        name = f"{stat.path} (new)" if stat.is_new else stat.path
        table.add_row(Text(name), str(stat.additions), str(stat.deletions))

    table.add_row(Text("total", style="muted"), str(summary.total_added), str(summary.total_deleted))
    console.print(table)


def render_commits(console: Console, commits: Iterable[CommitInfo]) -> None:
    table = Table(show_header=True, header_style="subtitle", box=box.SIMPLE)
    table.add_column("#", style="muted", width=3)
    table.add_column("Hash", style="highlight", width=8)
    table.add_column("When", style="muted", width=16)
    table.add_column("Message", style="normal")

    for i, commit in enumerate(commits, 1):
        table.add_row(str(i), commit.short_hash, commit.relative_time, Text(commit.message))

    console.print(table)


def render_backups(console: Console, backups: Iterable[BackupInfo]) -> None:
    table = Table(show_header=True, header_style="subtitle", box=box.SIMPLE)
    table.add_column("#", style="muted", width=3)
    table.add_column("Created", style="highlight", width=19)
    table.add_column("Hash", style="muted", width=8)
    table.add_column("Last message", style="normal")

    for i, backup in enumerate(backups, 1):
        created = backup.created_at
        when = created.strftime("%Y-%m-%d %H:%M:%S") if created else backup.timestamp
        table.add_row(str(i), when, backup.commit_hash, Text(backup.message))

    console.print(table)


def render_branches(console: Console, branches: Iterable[BranchInfo]) -> None:
    table = Table(show_header=True, header_style="subtitle", box=box.SIMPLE)
    table.add_column("#", style="muted", width=3)
    table.add_column("Experiment", style="normal")
    table.add_column("", style="accent", width=9)

    for i, branch in enumerate(branches, 1):
        table.add_row(str(i), Text(branch.name), "current" if branch.is_current else "")

    console.print(table)


def render_save_result(console: Console, result: SaveResult) -> None:
    parts = []
    if result.saved:
        parts.append(f"saved {len(result.saved)}")
    if result.reverted:
        parts.append(f"reverted {len(result.reverted)}")
    if result.ignored:
        parts.append(f"ignored {len(result.ignored)}")
    if result.skipped:
        parts.append(f"skipped {len(result.skipped)}")

    summary = ", ".join(parts) or "nothing changed"
    if result.commit_hash:
        summary += f" [muted]({result.commit_hash})[/muted]"
    console.print(f"[success]✓[/success] {summary}")

    if result.auto_synced:
        if result.sync_error:
            console.print(f"[error]Sync failed:[/error] {escape(result.sync_error)}")
        else:
            console.print("[success]✓[/success] Synced to GitHub")


def print_error(console: Console, message: str) -> None:
    console.print(f"[error]✗[/error] {escape(message)}")


def print_success(console: Console, message: str) -> None:
    console.print(f"[success]✓[/success] {escape(message)}")
