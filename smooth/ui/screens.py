"""Interactive screens of the terminal UI.

Each screen runs its own prompt loop and returns to the main menu when the
user backs out. Repository calls go through the app's background worker.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence, TypeVar

from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich import box
from rich.markup import escape

from ..core.errors import NoRemoteError, SmoothError
from ..core.models import FileAction
from ..core.theme import get_theme, next_theme_id
from ..core.workflow import SaveReview, SaveState
from .console import (
    print_error, print_success, render_backups, render_branches, render_changes,
    render_commits, render_diff, render_diff_summary, render_header, render_save_result
)

if TYPE_CHECKING:
    from .app import SmoothApp

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACTION_KEYS = {
    "s": FileAction.SAVE,
    "r": FileAction.REVERT,
    "k": FileAction.SKIP_ONCE,
    "i": FileAction.IGNORE,
}


class Screen:
    """Base class giving screens access to the console, service and worker."""

    title = ""

    def __init__(self, app: "SmoothApp"):
        self.app = app
        self.console = app.console
        self.service = app.service
        self.worker = app.worker

    def header(self) -> None:
        self.console.clear()
        render_header(self.console, self.app.last_status, self.title)

    def pause(self) -> None:
        Prompt.ask("[muted]Press Enter to continue[/muted]", default="", show_default=False)

    def pick(self, items: Sequence[T], prompt: str) -> Optional[T]:
        """Ask for a 1-based index; 0 or blank cancels."""
        if not items:
            return None
        choice = IntPrompt.ask(f"{prompt} [muted](0 to cancel)[/muted]", default=0, show_default=False)
        if 1 <= choice <= len(items):
            return items[choice - 1]
        if choice != 0:
            print_error(self.console, f"Choose a number between 1 and {len(items)}")
        return None

    def show(self) -> None:
        raise NotImplementedError


class SaveScreen(Screen):
    """Review every changed file, choose an action for each, then save."""

    title = "Save changes"

    HELP = (
        "[accent]<n>[/accent] cycle file n  "
        "[accent]<n>-[/accent] cycle back  "
        "[accent]<n>s/r/k/i[/accent] save/revert/skip/ignore  "
        "[accent]d <n>[/accent] diff  "
        "[accent]c[/accent] continue  "
        "[accent]x[/accent] cancel"
    )

    def show(self) -> None:
        review = self.worker.run("Looking for changes", self.service.start_save_review)

        if review.state is SaveState.NO_CHANGES:
            self.header()
            self.console.print("[muted]Nothing to save. Your work is all saved.[/muted]")
            self.pause()
            return

        while review.state in (SaveState.REVIEW, SaveState.INPUT):
            if review.state is SaveState.REVIEW:
                if not self._review(review):
                    return
            else:
                self._ask_message(review)

        self._finish(review)

    def _review(self, review: SaveReview) -> bool:
        """One round of the review loop. Returns False when the user cancels."""
        self.header()
        render_changes(self.console, review.changes, review.actions)
        self.console.print(self.HELP)

        command = Prompt.ask("[title]Command[/title]", default="c").strip().lower()

        if command == "x":
            return False

        if command == "c":
            try:
                review.proceed()
            except SmoothError as e:
                print_error(self.console, str(e))
                self.pause()
            return True

        if command.startswith("d"):
            change = self._change_at(review, command[1:].strip())
            if change is not None:
                diff = self.worker.run("Loading diff", self.service.file_diff, change.path)
                self.console.clear()
                render_diff(self.console, change.path, diff)
                self.pause()
            return True

        self._apply_action_command(review, command)
        return True

    def _apply_action_command(self, review: SaveReview, command: str) -> None:
        suffix = command[-1:] if command and not command[-1].isdigit() else ""
        change = self._change_at(review, command[:-1] if suffix else command)
        if change is None:
            return

        if suffix == "-":
            review.cycle(change.path, backward=True)
        elif suffix in ACTION_KEYS:
            review.set_action(change.path, ACTION_KEYS[suffix])
        elif suffix:
            print_error(self.console, f"Unknown command: {command}")
            self.pause()
        else:
            review.cycle(change.path)

    def _change_at(self, review: SaveReview, text: str):
        try:
            index = int(text)
        except ValueError:
            print_error(self.console, f"Not a file number: {text or '(blank)'}")
            self.pause()
            return None
        if not 1 <= index <= len(review.changes):
            print_error(self.console, f"Choose a number between 1 and {len(review.changes)}")
            self.pause()
            return None
        return review.changes[index - 1]

    def _ask_message(self, review: SaveReview) -> None:
        plan = review.plan()
        self.console.print(
            f"[muted]{len(plan.to_save)} to save, {len(plan.to_revert)} to revert, "
            f"{len(plan.to_ignore)} to ignore, {len(plan.skipped)} skipped[/muted]"
        )
        message = Prompt.ask("Describe what you changed [muted](blank to go back)[/muted]", default="",
                             show_default=False).strip()
        if not message:
            review.back()
            return
        self.worker.run("Saving", review.execute, message)

    def _finish(self, review: SaveReview) -> None:
        if review.state is SaveState.EXECUTING:
            self.worker.run("Working", review.execute)

        if review.state is SaveState.AUTO_SYNCING:
            self.worker.run("Syncing to GitHub", review.sync)

        self.header()
        if review.state is SaveState.ERROR:
            print_error(self.console, review.error or "Save failed")
        elif review.result is not None:
            render_save_result(self.console, review.result)
        self.pause()


class SyncScreen(Screen):
    """Push the current branch, offering to add a remote when there is none."""

    title = "Sync"

    def show(self) -> None:
        self.header()
        try:
            branch = self.worker.run("Syncing to GitHub", self.service.sync)
        except NoRemoteError as e:
            self.console.print(str(e))
            url = Prompt.ask("\nRepository URL [muted](blank to cancel)[/muted]", default="",
                             show_default=False).strip()
            if not url:
                return
            try:
                branch = self.worker.run("Adding remote and syncing", self.service.sync, url)
            except SmoothError as e:
                print_error(self.console, str(e))
                self.pause()
                return
        except SmoothError as e:
            print_error(self.console, str(e))
            self.pause()
            return

        print_success(self.console, f"Synced {branch} to GitHub")
        self.pause()


class RestoreScreen(Screen):
    """Go back to an earlier save, keeping a backup of the present."""

    title = "Restore"

    def show(self) -> None:
        self.header()
        commits = self.worker.run("Reading history", self.service.commit_history)
        if not commits:
            self.console.print("[muted]No saves yet.[/muted]")
            self.pause()
            return

        render_commits(self.console, commits)
        commit = self.pick(commits, "Restore to save")
        if commit is None:
            return

        preview = self.worker.run("Comparing", self.service.restore_preview, commit.full_hash)
        render_diff_summary(self.console, preview, "Changes since this save that will be undone")

        if not Confirm.ask(f"Restore to '{escape(commit.message)}'? A backup of where you are now is kept"):
            return

        try:
            result = self.worker.run("Restoring", self.service.restore, commit.full_hash)
        except SmoothError as e:
            print_error(self.console, str(e))
        else:
            print_success(self.console, f"Restored to {commit.short_hash}. Backup: {result.backup_name}")
        self.pause()


class BackupsScreen(Screen):
    """Browse and restore the automatic backups of the current branch."""

    title = "Backups"

    def show(self) -> None:
        self.header()
        backups = self.worker.run("Reading backups", self.service.backups)
        if not backups:
            self.console.print("[muted]No backups for this branch yet. One is made every time you restore.[/muted]")
            self.pause()
            return

        render_backups(self.console, backups)
        backup = self.pick(backups, "Restore backup")
        if backup is None:
            return

        if not Confirm.ask(f"Restore {backup.name}? Your current state is backed up first"):
            return

        try:
            result = self.worker.run("Restoring backup", self.service.restore_backup, backup.name)
        except SmoothError as e:
            print_error(self.console, str(e))
        else:
            print_success(self.console, f"Restored {backup.name}. Backup: {result.backup_name}")
        self.pause()


class ExperimentsScreen(Screen):
    """Start, switch between, keep or abandon experiment branches."""

    title = "Experiments"

    def show(self) -> None:
        while True:
            self.app.refresh_status()
            self.header()
            status = self.app.last_status
            experiments = self.worker.run("Reading experiments", self.service.experiments)

            if experiments:
                render_branches(self.console, experiments)
            else:
                self.console.print("[muted]No experiments yet.[/muted]\n")

            choices = self._menu(status is not None and status.on_experiment, bool(experiments),
                                 status is not None and not status.is_on_main)
            command = Prompt.ask("[title]Choose[/title]", choices=choices, default="x", show_choices=False)
            if command == "x":
                return

            try:
                self._dispatch(command, experiments)
            except SmoothError as e:
                print_error(self.console, str(e))
                self.pause()

    def _menu(self, on_experiment: bool, has_experiments: bool, off_main: bool) -> List[str]:
        entries = [("n", "New experiment")]
        if has_experiments:
            entries.append(("s", "Switch to an experiment"))
        if off_main:
            entries.append(("m", "Back to main"))
        if on_experiment:
            entries.append(("k", "Keep this experiment (merge into main)"))
            entries.append(("a", "Abandon this experiment"))
        entries.append(("x", "Back"))

        for key, label in entries:
            self.console.print(f"  [accent]{key}[/accent]  {label}")
        return [key for key, _ in entries]

    def _dispatch(self, command: str, experiments) -> None:
        if command == "n":
            name = Prompt.ask("Name your experiment").strip()
            branch = self.worker.run("Creating experiment", self.service.create_experiment, name)
            print_success(self.console, f"Now on {branch}")
        elif command == "s":
            experiment = self.pick(experiments, "Switch to")
            if experiment is None:
                return
            self._switch(experiment.name)
        elif command == "m":
            self._switch(self.app.last_status.main_branch)
        elif command == "k":
            if not Confirm.ask("Merge this experiment into main?"):
                return
            name = self.worker.run("Keeping experiment", self.service.keep_experiment)
            print_success(self.console, f"Kept {name}")
        elif command == "a":
            if not Confirm.ask("Throw this experiment away? This cannot be undone", default=False):
                return
            name = self.worker.run("Abandoning experiment", self.service.abandon_experiment)
            print_success(self.console, f"Abandoned {name}")
        self.pause()

    def _switch(self, branch: str) -> None:
        result = self.worker.run("Switching", self.service.switch_experiment, branch)
        print_success(self.console, f"Now on {result.branch}")
        if result.warning:
            self.console.print(f"[accent]![/accent] {result.warning}")


class SettingsScreen(Screen):
    """Edit the persisted preferences."""

    title = "Settings"

    def show(self) -> None:
        while True:
            self.header()
            config = self.service.get_config()

            table = Table(show_header=False, box=box.SIMPLE)
            table.add_column("Key", style="accent", width=3)
            table.add_column("Setting", style="normal")
            table.add_column("Value", style="highlight")
            table.add_row("a", "Sync after every save", "on" if config.auto_sync_enabled else "off")
            table.add_row("m", "Backups kept per branch", str(config.max_backups))
            table.add_row("e", "Experiments", "on" if config.experiments_enabled else "off")
            table.add_row("t", "Theme", get_theme(config.theme_id).name)
            table.add_row("x", "Back", "")
            self.console.print(table)

            command = Prompt.ask("[title]Change[/title]", choices=["a", "m", "e", "t", "x"],
                                 default="x", show_choices=False)
            if command == "x":
                return

            try:
                self._change(command, config)
            except SmoothError as e:
                print_error(self.console, str(e))
                self.pause()

    def _change(self, command: str, config) -> None:
        if command == "a":
            self.service.set_config({"autoSyncEnabled": not config.auto_sync_enabled})
        elif command == "e":
            self.service.set_config({"experimentsEnabled": not config.experiments_enabled})
        elif command == "m":
            value = IntPrompt.ask("Backups to keep per branch (1-1000)", default=config.max_backups)
            self.service.set_config({"maxBackups": value})
        elif command == "t":
            theme_id = next_theme_id(config.theme_id)
            self.service.set_config({"theme": theme_id})
            self.console.print(f"[muted]{get_theme(theme_id).name} applies the next time smooth starts.[/muted]")
            self.pause()
