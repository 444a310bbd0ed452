"""Workflow orchestration: save review, restore with backups, experiments.

Everything here is a fixed sequence of git operations guarded by a few
conditionals. The orchestrator owns no repository state of its own; branch
naming conventions are the only bookkeeping.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .config import Config
from .errors import GitCommandError, PreconditionError, SmoothError
from .models import (
    FileAction, FileChange, SaveResult, RestoreResult, SwitchResult,
    EXPERIMENT_PREFIX, IGNORE_FILE, MAIN_BRANCH_NAMES, backup_prefix,
    format_timestamp, is_experiment_branch
)
from ..git.operations import GitOperations
from ..git.status import StatusReader

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SaveState(Enum):
    """States of the save review flow."""
    REVIEW = "review"
    NO_CHANGES = "no_changes"
    INPUT = "input"
    EXECUTING = "executing"
    AUTO_SYNCING = "auto_syncing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SavePlan:
    """Changed paths grouped by the action chosen for them."""
    to_save: List[str] = field(default_factory=list)
    to_revert: List[str] = field(default_factory=list)
    to_ignore: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @classmethod
    def from_actions(cls, changes: Iterable[FileChange],
                     actions: Mapping[str, FileAction]) -> "SavePlan":
        """Group changes by action; a path with no chosen action is saved."""
        plan = cls()
        buckets = {
            FileAction.SAVE: plan.to_save,
            FileAction.REVERT: plan.to_revert,
            FileAction.IGNORE: plan.to_ignore,
            FileAction.SKIP_ONCE: plan.skipped,
        }
        for change in changes:
            buckets[actions.get(change.path, FileAction.SAVE)].append(change.path)
        return plan

    @property
    def has_work(self) -> bool:
        return bool(self.to_save or self.to_revert or self.to_ignore)

    @property
    def needs_message(self) -> bool:
        return bool(self.to_save)


class SaveReview:
    """The save review flow for one session of the review screen.

    Holds the only in-memory mutable state in the app: the per-file action
    map. It is filled with Save for every path on entry and consumed once by
    execute().
    """

    def __init__(self, orchestrator: "WorkflowOrchestrator"):
        self.orchestrator = orchestrator
        self.state = SaveState.REVIEW
        self.changes: List[FileChange] = []
        self.actions: Dict[str, FileAction] = {}
        self.result: Optional[SaveResult] = None
        self.error: Optional[str] = None

    def start(self) -> SaveState:
        """Read the changed files and reset every action to Save."""
        self.changes = self.orchestrator.reader.changed_files()
        self.actions = {change.path: FileAction.SAVE for change in self.changes}
        self.result = None
        self.error = None
        self.state = SaveState.REVIEW if self.changes else SaveState.NO_CHANGES
        return self.state

    def _require(self, *states: SaveState) -> None:
        if self.state not in states:
            raise PreconditionError(f"Not allowed while {self.state.value}")

    def set_action(self, path: str, action: FileAction) -> None:
        self._require(SaveState.REVIEW)
        if path not in self.actions:
            raise PreconditionError(f"{path} is not among the changed files")
        self.actions[path] = action

    def cycle(self, path: str, backward: bool = False) -> FileAction:
        """Move one file to the next (or previous) action and return it."""
        current = self.actions.get(path, FileAction.SAVE)
        action = current.previous() if backward else current.next()
        self.set_action(path, action)
        return action

    def plan(self) -> SavePlan:
        return SavePlan.from_actions(self.changes, self.actions)

    @property
    def can_proceed(self) -> bool:
        return self.plan().has_work

    @property
    def needs_message(self) -> bool:
        return self.plan().needs_message

    def proceed(self) -> SaveState:
        """Leave review: ask for a message when something will be committed."""
        self._require(SaveState.REVIEW)
        if not self.can_proceed:
            raise PreconditionError("Every file is set to Skip once; there is nothing to do.")
        self.state = SaveState.INPUT if self.needs_message else SaveState.EXECUTING
        return self.state

    def back(self) -> SaveState:
        self._require(SaveState.INPUT)
        self.state = SaveState.REVIEW
        return self.state

    def execute(self, message: str = "") -> SaveState:
        """Run the plan. Failures land in the ERROR state instead of raising.

        Raises:
            PreconditionError: If a message is required but empty; the review
                stays in INPUT so the user can try again
        """
        self._require(SaveState.INPUT, SaveState.EXECUTING)
        plan = self.plan()
        if plan.needs_message and not message.strip():
            raise PreconditionError("Please describe what you changed.")

        self.state = SaveState.EXECUTING
        try:
            self.result = self.orchestrator.execute_save(plan, message)
        except SmoothError as e:
            logger.error(f"Save failed: {e}")
            self.error = str(e)
            self.state = SaveState.ERROR
            return self.state

        if self.orchestrator.should_auto_sync(self.result):
            self.state = SaveState.AUTO_SYNCING
        else:
            self.state = SaveState.SUCCESS
        return self.state

    def sync(self) -> SaveState:
        """Push after a save; the outcome is SUCCESS whether or not the push worked."""
        self._require(SaveState.AUTO_SYNCING)
        self.orchestrator.auto_sync(self.result)
        self.state = SaveState.SUCCESS
        return self.state


def sanitize_experiment_name(name: str) -> str:
    """Turn a human-supplied name into something safe inside a branch name."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    slug = re.sub(r"[^a-z0-9._-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    slug = re.sub(r"\.{2,}", ".", slug)
    return slug.strip("-.")


def experiment_branch_name(name: str, moment: datetime) -> str:
    """experiment-<sanitized-name>-<YYYYMMDD-HHMMSS>.

    Raises:
        PreconditionError: If nothing usable is left of the name
    """
    slug = sanitize_experiment_name(name)
    if not slug:
        raise PreconditionError("Please give your experiment a name.")
    return f"{EXPERIMENT_PREFIX}{slug}-{format_timestamp(moment)}"


def quicksave_message(moment: datetime) -> str:
    """Default commit message, e.g. 'Save Jan 2, 3:04 PM'."""
    hour = moment.strftime("%I").lstrip("0") or "12"
    return f"Save {moment.strftime('%b')} {moment.day}, {hour}:{moment.strftime('%M %p')}"


class WorkflowOrchestrator:
    """Runs multi-step workflows over the status reader and git operations."""

    def __init__(self, reader: StatusReader, operations: GitOperations,
                 config_loader: Callable[[], Config],
                 clock: Optional[Clock] = None):
        """Initialize orchestrator.

        Args:
            reader: Status reader for repository facts
            operations: Mutating git operations
            config_loader: Returns the current config (read on each workflow)
            clock: Source of "now" for generated names and messages
        """
        self.reader = reader
        self.operations = operations
        self.config_loader = config_loader
        self.clock = clock or datetime.now

    # Save

    def execute_save(self, plan: SavePlan, message: str) -> SaveResult:
        """Apply a save plan: revert, then ignore, then stage and commit.

        Stops at the first failing step. No commit happens unless at least
        one file is marked Save; the ignore file is staged along with the
        saved files whenever ignore actions ran.

        Raises:
            PreconditionError: If nothing is actionable, or files are to be
                saved without a message
            GitCommandError: If any step fails
        """
        if not plan.has_work:
            raise PreconditionError("Every file is set to Skip once; there is nothing to do.")
        if plan.needs_message and not message.strip():
            raise PreconditionError("Please describe what you changed.")

        result = SaveResult(skipped=list(plan.skipped))

        if plan.to_revert:
            try:
                self.operations.revert_files(plan.to_revert)
            except GitCommandError as e:
                raise GitCommandError(e.command_args, f"Failed to revert files: {e.output}") from e
            result.reverted = list(plan.to_revert)

        for path in plan.to_ignore:
            try:
                self.operations.append_to_ignore_file(path)
            except GitCommandError as e:
                raise GitCommandError(
                    e.command_args, f"Failed to add {path} to {IGNORE_FILE}: {e.output}"
                ) from e
            result.ignored.append(path)

        if plan.to_save:
            to_stage = list(plan.to_save)
            if plan.to_ignore and IGNORE_FILE not in to_stage:
                to_stage.append(IGNORE_FILE)

            try:
                self.operations.stage_files(to_stage)
            except GitCommandError as e:
                raise GitCommandError(e.command_args, f"Failed to stage files: {e.output}") from e

            try:
                self.operations.commit(message)
            except GitCommandError as e:
                raise GitCommandError(e.command_args, f"Failed to commit: {e.output}") from e

            result.saved = list(plan.to_save)
            result.commit_hash = self.reader.head_short_hash() or None

        return result

    def should_auto_sync(self, result: SaveResult) -> bool:
        return bool(result.saved) and self.config_loader().auto_sync_enabled and self.reader.has_remote()

    def auto_sync(self, result: SaveResult) -> SaveResult:
        """Push after a successful save. A failed push never fails the save."""
        result.auto_synced = True
        try:
            self.operations.push()
        except SmoothError as e:
            logger.warning(f"Auto-sync failed: {e}")
            result.sync_error = str(e)
        return result

    def save(self, changes: Iterable[FileChange], actions: Mapping[str, FileAction],
             message: str) -> SaveResult:
        """Plan, execute and (when configured) auto-sync in one call."""
        result = self.execute_save(SavePlan.from_actions(changes, actions), message)
        if self.should_auto_sync(result):
            self.auto_sync(result)
        return result

    def quicksave_message(self) -> str:
        return quicksave_message(self.clock())

    # Restore and backups

    def create_backup(self, for_branch: str) -> str:
        """Create backup/<branch>/<timestamp> at HEAD without switching to it."""
        name = f"{backup_prefix(for_branch)}{format_timestamp(self.clock())}"
        self.operations.create_backup_branch(name)
        logger.info(f"Created backup {name}")
        return name

    def trim_backups(self, for_branch: str, max_count: int) -> List[str]:
        """Delete the oldest backups beyond max_count. Best-effort, never raises.

        Returns:
            Names of the backups actually deleted
        """
        max_count = max(max_count, 1)
        backups = self.reader.list_backups(for_branch)
        deleted = []

        # list_backups is newest first; everything past max_count is older
        for backup in backups[max_count:]:
            try:
                self.operations.delete_branch(backup.name)
                deleted.append(backup.name)
            except SmoothError as e:
                logger.warning(f"Could not delete old backup {backup.name}: {e}")

        return deleted

    def restore(self, commit_hash: str) -> RestoreResult:
        """Back up the current state, trim old backups, then hard-reset.

        If the backup cannot be created nothing is reset.

        Raises:
            GitCommandError: If the backup or the reset fails
        """
        branch = self.reader.current_branch()

        try:
            backup_name = self.create_backup(branch)
        except GitCommandError as e:
            raise GitCommandError(e.command_args, f"Failed to create backup: {e.output}") from e

        trimmed = self.trim_backups(branch, self.config_loader().max_backups)
        self.operations.reset_hard(commit_hash)

        return RestoreResult(target=commit_hash, backup_name=backup_name, trimmed=trimmed)

    def restore_backup(self, backup_name: str) -> RestoreResult:
        """Restore a backup branch through the same backup-then-reset protocol.

        The backup is resolved to a commit first, so trimming cannot delete
        the target before the reset runs.
        """
        target = self.reader.resolve_commit(backup_name)
        return self.restore(target)

    # Experiments

    def create_experiment(self, name: str) -> str:
        """Create and switch to a new experiment branch. Returns its name."""
        branch = experiment_branch_name(name, self.clock())
        self.operations.create_branch(branch)
        logger.info(f"Started experiment {branch}")
        return branch

    def _leave_current_branch(self) -> Dict[str, str]:
        current = self.reader.current_branch()
        if current in MAIN_BRANCH_NAMES:
            raise PreconditionError("You're on the main line already; there's no experiment to finish.")
        if not is_experiment_branch(current):
            raise PreconditionError(f"{current} is not an experiment; only {EXPERIMENT_PREFIX}* branches can be kept or abandoned.")
        return {"experiment": current, "main": self.reader.main_branch_name()}

    def keep_experiment(self) -> str:
        """Merge the current experiment into main and stay on main.

        On merge failure the merge is aborted and the experiment branch is
        checked out again, leaving the user where they started.

        Returns:
            The experiment branch that was merged
        """
        names = self._leave_current_branch()
        experiment, main = names["experiment"], names["main"]

        self.operations.switch_branch(main)
        try:
            self.operations.merge_branch(experiment)
        except GitCommandError:
            self._recover_from_failed_merge(experiment)
            raise

        logger.info(f"Kept experiment {experiment} (merged into {main})")
        return experiment

    def _recover_from_failed_merge(self, experiment: str) -> None:
        try:
            self.operations.merge_abort()
        except GitCommandError as e:
            # No merge in progress (e.g. the merge refused to start)
            logger.debug(f"merge --abort: {e}")
        try:
            self.operations.switch_branch(experiment)
        except GitCommandError as e:
            logger.error(f"Could not switch back to {experiment}: {e}")

    def abandon_experiment(self) -> str:
        """Switch to main and force-delete the current experiment.

        Returns:
            The experiment branch that was deleted
        """
        names = self._leave_current_branch()
        experiment, main = names["experiment"], names["main"]

        self.operations.switch_branch(main)
        self.operations.delete_branch(experiment)

        logger.info(f"Abandoned experiment {experiment}")
        return experiment

    def switch_branch(self, name: str) -> SwitchResult:
        """Switch branches, carrying uncommitted changes across via the stash.

        A failed pop leaves the changes stashed and is reported through
        SwitchResult.stash_kept rather than as an error.
        """
        result = SwitchResult(branch=name)

        if self.reader.has_uncommitted_changes():
            # git stash leaves untracked files alone and may create no entry
            before = self.reader.stash_head()
            self.operations.stash()
            result.stashed = self.reader.stash_head() != before

        try:
            self.operations.switch_branch(name)
        except GitCommandError:
            if result.stashed:
                self._pop_stash()
            raise

        if result.stashed and not self._pop_stash():
            result.stash_kept = True

        return result

    def _pop_stash(self) -> bool:
        try:
            self.operations.stash_pop()
            return True
        except GitCommandError as e:
            logger.warning(f"Stashed changes were not re-applied: {e}")
            return False
