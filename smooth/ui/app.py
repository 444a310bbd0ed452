"""Main menu loop of the terminal UI."""

import logging
from typing import List, Optional, Tuple

from rich.console import Console
from rich.prompt import Prompt

from ..core.errors import SmoothError
from ..core.models import RepositoryStatus
from ..core.service import SmoothService
from .console import BackgroundWorker, make_console, print_error, render_header, render_save_result
from .screens import (
    BackupsScreen, ExperimentsScreen, RestoreScreen, SaveScreen, SettingsScreen, SyncScreen
)

logger = logging.getLogger(__name__)


class SmoothApp:
    """Interactive terminal front-end over a SmoothService."""

    def __init__(self, service: SmoothService, console: Optional[Console] = None):
        """Initialize app.

        Args:
            service: Repository operations
            console: Rich console (built from the configured theme if None)
        """
        self.service = service
        self.console = console or make_console(service.theme)
        self.worker = BackgroundWorker(self.console)
        self.last_status: Optional[RepositoryStatus] = None

    def refresh_status(self) -> Optional[RepositoryStatus]:
        try:
            self.last_status = self.worker.run("Reading status", self.service.status)
        except SmoothError as e:
            logger.warning(f"Could not read status: {e}")
            self.last_status = None
        return self.last_status

    def menu_entries(self) -> List[Tuple[str, str]]:
        status = self.last_status
        entries = []
        if status is None or status.has_changes:
            entries.append(("s", "Save changes"))
            entries.append(("q", "Quick save everything"))
        entries.append(("y", "Sync to GitHub"))
        entries.append(("r", "Restore an earlier save"))
        entries.append(("b", "Backups"))
        if self.service.experiments_available():
            entries.append(("e", "Experiments"))
        entries.append(("c", "Settings"))
        entries.append(("x", "Exit"))
        return entries

    def run(self) -> None:
        """Show the main menu until the user exits."""
        screens = {
            "s": SaveScreen,
            "y": SyncScreen,
            "r": RestoreScreen,
            "b": BackupsScreen,
            "e": ExperimentsScreen,
            "c": SettingsScreen,
        }

        try:
            while True:
                self.refresh_status()
                self.console.clear()
                render_header(self.console, self.last_status)

                entries = self.menu_entries()
                for key, label in entries:
                    self.console.print(f"  [accent]{key}[/accent]  {label}")

                choice = Prompt.ask(
                    "\n[title]What would you like to do?[/title]",
                    choices=[key for key, _ in entries],
                    default="x",
                    show_choices=False
                )

                if choice == "x":
                    break

                try:
                    if choice == "q":
                        self.quicksave()
                    else:
                        screens[choice](self).show()
                except SmoothError as e:
                    print_error(self.console, str(e))
                    Prompt.ask("[muted]Press Enter to continue[/muted]", default="", show_default=False)

        except KeyboardInterrupt:
            self.console.print()
        finally:
            self.worker.shutdown()

    def quicksave(self) -> None:
        result = self.worker.run("Saving everything", self.service.quicksave)
        render_save_result(self.console, result)
        Prompt.ask("[muted]Press Enter to continue[/muted]", default="", show_default=False)
