"""Core data models and type definitions for Smooth."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any


# Type aliases for better readability
CommitHash = str
BranchName = str

EXPERIMENT_PREFIX = "experiment-"
BACKUP_PREFIX = "backup/"
IGNORE_FILE = ".gitignore"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
MAIN_BRANCH_NAMES = ("main", "master")


class FileStatus(Enum):
    """How a file differs from the last commit."""
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class FileAction(Enum):
    """What to do with one changed file when saving."""
    SAVE = "save"
    REVERT = "revert"
    SKIP_ONCE = "skip"
    IGNORE = "ignore"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]

    def next(self) -> "FileAction":
        """Next action in the Save -> Revert -> Skip -> Ignore cycle."""
        order = list(FileAction)
        return order[(order.index(self) + 1) % len(order)]

    def previous(self) -> "FileAction":
        """Previous action in the cycle."""
        order = list(FileAction)
        return order[(order.index(self) - 1) % len(order)]


_ACTION_LABELS = {
    FileAction.SAVE: "Save",
    FileAction.REVERT: "Revert",
    FileAction.SKIP_ONCE: "Skip once",
    FileAction.IGNORE: "Ignore forever",
}


@dataclass(frozen=True)
class FileChange:
    """A changed path in the working tree, from porcelain status."""
    status: FileStatus
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "path": self.path}


@dataclass(frozen=True)
class CommitInfo:
    """One historical commit."""
    short_hash: CommitHash
    message: str
    relative_time: str
    full_hash: CommitHash

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.short_hash,
            "message": self.message,
            "timestamp": self.relative_time,
            "fullHash": self.full_hash,
        }


@dataclass(frozen=True)
class BranchInfo:
    """A local branch."""
    name: BranchName
    is_current: bool = False

    @property
    def is_experiment(self) -> bool:
        return is_experiment_branch(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "isCurrent": self.is_current}


@dataclass(frozen=True)
class BackupInfo:
    """A safety branch named backup/<for-branch>/<timestamp>."""
    name: BranchName
    for_branch: BranchName
    timestamp: str
    commit_hash: CommitHash = ""
    message: str = ""

    @property
    def created_at(self) -> Optional[datetime]:
        try:
            return datetime.strptime(self.timestamp, TIMESTAMP_FORMAT)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "forBranch": self.for_branch,
            "timestamp": self.timestamp,
            "commitHash": self.commit_hash,
            "message": self.message,
        }


@dataclass
class DiffStat:
    """Line counts for one file in a diff."""
    path: str
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False
    is_new: bool = False


@dataclass
class DiffSummary:
    """Per-file diff stats plus totals."""
    files: List[DiffStat] = field(default_factory=list)
    total_added: int = 0
    total_deleted: int = 0

    def add(self, stat: DiffStat) -> None:
        self.files.append(stat)
        if not stat.is_binary:
            self.total_added += stat.additions
            self.total_deleted += stat.deletions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [
                {
                    "path": s.path,
                    "additions": s.additions,
                    "deletions": s.deletions,
                    "isBinary": s.is_binary,
                    "isNew": s.is_new,
                }
                for s in self.files
            ],
            "totalAdded": self.total_added,
            "totalDeleted": self.total_deleted,
        }


@dataclass
class RepositoryStatus:
    """Headline facts shown at the top of every screen."""
    branch: BranchName
    has_changes: bool
    is_on_main: bool
    main_branch: BranchName
    has_remote: bool = False
    remote_url: str = ""

    @property
    def on_experiment(self) -> bool:
        return is_experiment_branch(self.branch)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branch": self.branch,
            "hasChanges": self.has_changes,
            "isOnMain": self.is_on_main,
            "mainBranch": self.main_branch,
            "onExperiment": self.on_experiment,
            "hasRemote": self.has_remote,
            "remoteUrl": self.remote_url,
        }


@dataclass
class SaveResult:
    """Outcome of executing a set of file actions."""
    saved: List[str] = field(default_factory=list)
    reverted: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    commit_hash: Optional[CommitHash] = None
    auto_synced: bool = False
    sync_error: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.commit_hash is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "savedCount": len(self.saved),
            "revertedCount": len(self.reverted),
            "ignoredCount": len(self.ignored),
            "skippedCount": len(self.skipped),
            "hash": self.commit_hash,
            "autoSynced": self.auto_synced,
            "syncError": self.sync_error or "",
        }


@dataclass
class RestoreResult:
    """Outcome of a backup-then-reset restore."""
    target: CommitHash
    backup_name: BranchName
    trimmed: List[BranchName] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "ok", "backup": self.backup_name, "target": self.target}


@dataclass
class SwitchResult:
    """Outcome of switching branches with a stash around it."""
    branch: BranchName
    stashed: bool = False
    stash_kept: bool = False

    @property
    def warning(self) -> Optional[str]:
        if self.stash_kept:
            return ("Your unsaved changes could not be re-applied on "
                    f"'{self.branch}' and are still stashed. "
                    "Run 'git stash pop' to get them back.")
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "branch": self.branch,
            "stashed": self.stashed,
            "stashKept": self.stash_kept,
            "warning": self.warning or "",
        }


def is_experiment_branch(name: str) -> bool:
    """Experiments are identified purely by branch-name prefix."""
    return name.startswith(EXPERIMENT_PREFIX)


def backup_prefix(for_branch: str) -> str:
    return f"{BACKUP_PREFIX}{for_branch}/"


def format_timestamp(moment: datetime) -> str:
    """Second-resolution, zero-padded, so lexicographic order is chronological."""
    return moment.strftime(TIMESTAMP_FORMAT)

