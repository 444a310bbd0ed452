"""Presentation-facing API shared by the terminal UI, the CLI and the web server."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from .config import Config, ConfigManager
from .errors import NoRemoteError, PreconditionError
from .interfaces import ICommandRunner
from .models import (
    BackupInfo, BranchInfo, CommitInfo, DiffSummary, FileAction, FileChange,
    RepositoryStatus, RestoreResult, SaveResult, SwitchResult, BACKUP_PREFIX,
    is_experiment_branch
)
from .theme import Theme, get_theme
from .workflow import SaveReview, WorkflowOrchestrator
from ..git.operations import GitOperations
from ..git.runner import GitCommandRunner, find_repository_root
from ..git.status import StatusReader

logger = logging.getLogger(__name__)

ActionLike = Union[FileAction, str]


def parse_file_actions(actions: Optional[Mapping[str, ActionLike]]) -> Dict[str, FileAction]:
    """Accept FileAction values or their wire names ('save', 'revert', 'skip', 'ignore').

    Raises:
        PreconditionError: If an action name is not recognised
    """
    parsed = {}
    for path, action in (actions or {}).items():
        if isinstance(action, FileAction):
            parsed[path] = action
            continue
        try:
            parsed[path] = FileAction(str(action).lower())
        except ValueError:
            valid = ", ".join(a.value for a in FileAction)
            raise PreconditionError(f"Unknown action '{action}' for {path} (expected one of: {valid})")
    return parsed


class SmoothService:
    """One repository, one config file, every user-facing operation."""

    def __init__(self, repo_root: Path, config_manager: Optional[ConfigManager] = None,
                 runner: Optional[ICommandRunner] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize service.

        Args:
            repo_root: Top-level directory of the repository
            config_manager: Config storage (defaults to ~/.smooth/config.json)
            runner: Command runner, mainly for tests
            clock: Source of "now" for generated names and messages
        """
        self.repo_root = Path(repo_root)
        self.config_manager = config_manager or ConfigManager()
        self.runner = runner or GitCommandRunner(self.repo_root)
        self.reader = StatusReader(self.runner, self.repo_root)
        self.operations = GitOperations(self.runner, self.repo_root, self.reader)
        self.orchestrator = WorkflowOrchestrator(
            self.reader, self.operations, self.config_manager.load_config, clock
        )

    @classmethod
    def open(cls, path: Union[str, Path], config_manager: Optional[ConfigManager] = None) -> "SmoothService":
        """Locate the repository containing path and build a service for it.

        Raises:
            NotARepositoryError: If path is not inside a git work tree
        """
        return cls(find_repository_root(path), config_manager)

    # Status

    def status(self) -> RepositoryStatus:
        branch = self.reader.current_branch()
        remote_url = self.reader.remote_url()
        return RepositoryStatus(
            branch=branch,
            has_changes=self.reader.has_uncommitted_changes(),
            is_on_main=self.reader.is_on_main_branch(),
            main_branch=self.reader.main_branch_name(),
            has_remote=bool(remote_url),
            remote_url=remote_url,
        )

    def changed_files(self) -> List[FileChange]:
        return self.reader.changed_files()

    def file_diff(self, path: str) -> str:
        return self.reader.file_diff(path)

    def uncommitted_diff_stat(self) -> DiffSummary:
        return self.reader.uncommitted_diff_stat()

    # Save

    def start_save_review(self) -> SaveReview:
        review = SaveReview(self.orchestrator)
        review.start()
        return review

    def save(self, message: str, file_actions: Optional[Mapping[str, ActionLike]] = None) -> SaveResult:
        """Save the current changes; paths missing from file_actions are saved.

        Raises:
            PreconditionError: If there is nothing to save or no message
            GitCommandError: If a git step fails
        """
        actions = parse_file_actions(file_actions)
        changes = self.reader.changed_files()
        if not changes:
            raise PreconditionError("No changes to save.")
        return self.orchestrator.save(changes, actions, message)

    def quicksave(self) -> SaveResult:
        """Save every changed file with a generated message."""
        return self.save(self.orchestrator.quicksave_message())

    # History and restore

    def commit_history(self, limit: int = 20) -> List[CommitInfo]:
        return self.reader.commit_history(limit)

    def last_commit_message(self) -> str:
        return self.reader.last_commit_message()

    def restore_preview(self, commit_hash: str) -> DiffSummary:
        """What differs between commit_hash and the working tree right now."""
        return self.reader.diff_stat_between(commit_hash)

    def restore(self, commit_hash: str) -> RestoreResult:
        if not commit_hash.strip():
            raise PreconditionError("Choose a save point to restore.")
        return self.orchestrator.restore(commit_hash.strip())

    def backups(self) -> List[BackupInfo]:
        """Backups of the current branch, newest first."""
        return self.reader.list_backups(self.reader.current_branch())

    def restore_backup(self, backup_name: str) -> RestoreResult:
        if not backup_name.startswith(BACKUP_PREFIX):
            raise PreconditionError(f"'{backup_name}' is not a backup")
        return self.orchestrator.restore_backup(backup_name)

    # Experiments

    def experiments(self) -> List[BranchInfo]:
        return self.reader.list_experiments()

    def experiments_available(self) -> bool:
        """Experiments are offered when enabled, or when already on one."""
        if self.get_config().experiments_enabled:
            return True
        return is_experiment_branch(self.reader.current_branch())

    def create_experiment(self, name: str) -> str:
        return self.orchestrator.create_experiment(name)

    def _require_clean_tree(self, action: str) -> None:
        if self.reader.has_uncommitted_changes():
            raise PreconditionError(f"Save or revert your changes before you {action} this experiment.")

    def keep_experiment(self) -> str:
        self._require_clean_tree("keep")
        return self.orchestrator.keep_experiment()

    def abandon_experiment(self) -> str:
        self._require_clean_tree("abandon")
        return self.orchestrator.abandon_experiment()

    def switch_experiment(self, name: str) -> SwitchResult:
        """Switch to an experiment or back to main, carrying unsaved changes along."""
        names = {branch.name for branch in self.reader.list_branches()}
        if name not in names:
            raise PreconditionError(f"No branch named '{name}'")
        result = self.orchestrator.switch_branch(name)
        if result.warning:
            logger.warning(result.warning)
        return result

    # Ignore file and remotes

    def add_to_ignore(self, pattern: str) -> None:
        pattern = pattern.strip()
        if not pattern:
            raise PreconditionError("Pattern is required")
        self.operations.append_to_ignore_file(pattern)

    def sync(self, remote_url: Optional[str] = None) -> str:
        """Push the current branch, first adding origin when a URL is supplied.

        Returns:
            The branch that was pushed

        Raises:
            NoRemoteError: If there is no origin and no URL was given
            GitCommandError: If adding the remote or the push fails
        """
        if not self.reader.has_remote():
            if not remote_url or not remote_url.strip():
                raise NoRemoteError()
            self.operations.add_remote(remote_url.strip())

        self.operations.push()
        return self.reader.current_branch()

    # Configuration

    def get_config(self) -> Config:
        return self.config_manager.load_config()

    def set_config(self, partial: Dict) -> Config:
        return self.config_manager.update_config(partial)

    @property
    def theme(self) -> Theme:
        return get_theme(self.get_config().theme_id)
