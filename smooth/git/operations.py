"""State-changing git operations.

Each operation is one git invocation (or a short fixed sequence) and raises
GitCommandError with git's own output when it fails.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..core.interfaces import ICommandRunner
from ..core.models import IGNORE_FILE
from ..core.errors import GitCommandError, NoRemoteError
from .status import StatusReader

logger = logging.getLogger(__name__)


class GitOperations:
    """Mutating operations on the working tree, index, branches and remotes."""

    def __init__(self, runner: ICommandRunner, work_dir: Path,
                 reader: Optional[StatusReader] = None):
        """Initialize git operations.

        Args:
            runner: Command runner for git invocations
            work_dir: Repository top-level directory
            reader: Status reader used for remote/branch lookups
        """
        self.runner = runner
        self.work_dir = Path(work_dir)
        self.reader = reader or StatusReader(runner, self.work_dir)

    def _check(self, *args: str) -> str:
        result = self.runner.run(*args)
        if not result.ok:
            raise GitCommandError(args, result.output)
        return result.output

    # Index and commits

    def stage_all(self) -> None:
        self._check("add", "-A")

    def stage_files(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        self._check("add", "--", *paths)

    def commit(self, message: str) -> None:
        self._check("commit", "-m", message)
        logger.info(f"Committed: {message}")

    def revert_files(self, paths: Sequence[str]) -> None:
        """Discard working-tree changes for exactly these paths (checkout from HEAD)."""
        if not paths:
            return
        self._check("checkout", "HEAD", "--", *paths)
        logger.info(f"Reverted {len(paths)} file(s)")

    def append_to_ignore_file(self, pattern: str) -> None:
        """Append a pattern to .gitignore, creating it if needed.

        Appending the same pattern twice writes it twice.

        Raises:
            GitCommandError: If the ignore file cannot be written
        """
        ignore_path = self.work_dir / IGNORE_FILE
        try:
            with open(ignore_path, "a", encoding="utf-8") as f:
                f.write("\n" + pattern)
        except OSError as e:
            raise GitCommandError(["<append>", str(ignore_path)], f"Could not update {IGNORE_FILE}: {e}")
        logger.info(f"Added {pattern!r} to {IGNORE_FILE}")

    def reset_hard(self, commit_hash: str) -> None:
        """Move the branch pointer and working tree to commit_hash. Destructive."""
        self._check("reset", "--hard", commit_hash)
        logger.info(f"Reset to {commit_hash}")

    # Remotes

    def add_remote(self, url: str) -> None:
        self._check("remote", "add", "origin", url)
        logger.info(f"Added remote origin: {url}")

    def push(self) -> None:
        """Push the current branch to origin with upstream tracking.

        Raises:
            NoRemoteError: If no origin remote is configured
            GitCommandError: If the push fails
        """
        if not self.reader.has_remote():
            raise NoRemoteError()

        branch = self.reader.current_branch()
        self._check("push", "-u", "origin", branch)
        logger.info(f"Pushed {branch} to origin")

    # Branches

    def create_branch(self, name: str) -> None:
        """Create a branch at HEAD and switch to it."""
        self._check("checkout", "-b", name)

    def create_backup_branch(self, name: str) -> None:
        """Create a branch at HEAD without switching to it."""
        self._check("branch", name)

    def switch_branch(self, name: str) -> None:
        self._check("checkout", name)

    def merge_branch(self, name: str) -> None:
        self._check("merge", name)

    def merge_abort(self) -> None:
        self._check("merge", "--abort")

    def delete_branch(self, name: str) -> None:
        """Force-delete a branch, merged or not."""
        self._check("branch", "-D", name)

    # Stash

    def stash(self) -> None:
        self._check("stash")

    def stash_pop(self) -> None:
        """Pop the latest stash. Callers treat failure as non-fatal."""
        self._check("stash", "pop")
