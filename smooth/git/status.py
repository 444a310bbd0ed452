"""Read-only queries against the working tree and branch list."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..core.interfaces import ICommandRunner
from ..core.models import (
    FileChange, FileStatus, CommitInfo, BranchInfo, BackupInfo, DiffStat,
    DiffSummary, MAIN_BRANCH_NAMES, backup_prefix, is_experiment_branch
)
from ..core.errors import GitCommandError

logger = logging.getLogger(__name__)

# Unit separator: cannot appear in a commit subject line
FIELD_SEP = "\x1f"
LOG_FORMAT = FIELD_SEP.join(["%h", "%s", "%cr", "%H"])

NO_CHANGES_TEXT = "No changes in this file"
READ_ERROR_TEXT = "Error reading file"


def classify_status_code(code: str) -> FileStatus:
    """Map a two-character porcelain status code to a FileStatus.

    Precedence: added (including untracked), then deleted, then renamed,
    anything else counts as modified.
    """
    code = code.ljust(2)
    if "A" in code or code == "??":
        return FileStatus.ADDED
    if "D" in code:
        return FileStatus.DELETED
    if "R" in code:
        return FileStatus.RENAMED
    return FileStatus.MODIFIED


def parse_porcelain_entries(output: str) -> List[Tuple[str, str]]:
    """Split `git status --porcelain -z` output into (code, path) pairs.

    Renames and copies carry the original path as an extra NUL-separated
    field; the pair keeps the new path.
    """
    entries = []
    records = iter(output.split("\0"))
    for record in records:
        if len(record) < 4:
            continue
        code, path = record[:2], record[3:]
        if "R" in code or "C" in code:
            next(records, None)
        entries.append((code, path))
    return entries


def parse_porcelain(output: str) -> List[FileChange]:
    """Parse `git status --porcelain -z` output into FileChange entries."""
    return [
        FileChange(status=classify_status_code(code), path=path)
        for code, path in parse_porcelain_entries(output)
    ]


def parse_log(output: str) -> List[CommitInfo]:
    """Parse log output written with LOG_FORMAT, most recent first."""
    commits = []
    for line in output.splitlines():
        parts = line.split(FIELD_SEP, 3)
        if len(parts) == 4:
            commits.append(CommitInfo(
                short_hash=parts[0],
                message=parts[1],
                relative_time=parts[2],
                full_hash=parts[3],
            ))
    return commits


def parse_branches(output: str) -> List[BranchInfo]:
    """Parse `git branch --format=%(refname:short)|%(HEAD)` output."""
    branches = []
    for line in output.splitlines():
        name, sep, head = line.strip().rpartition("|")
        if sep and name:
            branches.append(BranchInfo(name=name, is_current=head.strip() == "*"))
    return branches


def parse_numstat(output: str, summary: Optional[DiffSummary] = None) -> DiffSummary:
    """Parse `git diff --numstat` output into a DiffSummary.

    Binary files report '-' instead of counts and are flagged is_binary.
    """
    summary = summary or DiffSummary()
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added, deleted, path = parts
        if added == "-" or deleted == "-":
            summary.add(DiffStat(path=path, is_binary=True))
            continue
        try:
            summary.add(DiffStat(path=path, additions=int(added), deletions=int(deleted)))
        except ValueError:
            logger.debug(f"Skipping unparseable numstat line: {line!r}")
    return summary


def count_lines(path: Path) -> int:
    """Count lines the way an editor would: a final unterminated line still counts."""
    try:
        data = path.read_bytes()
    except OSError:
        return 0
    if not data:
        return 0
    count = data.count(b"\n")
    if not data.endswith(b"\n"):
        count += 1
    return count


class StatusReader:
    """Derives facts about the repository, one git call (or a few) per query.

    Queries that need at least one commit degrade to empty results on a
    brand-new repository instead of raising.
    """

    def __init__(self, runner: ICommandRunner, work_dir: Path):
        """Initialize status reader.

        Args:
            runner: Command runner for git invocations
            work_dir: Repository top-level directory
        """
        self.runner = runner
        self.work_dir = Path(work_dir)

    # Branches

    def current_branch(self) -> str:
        """Return the current branch name.

        Falls back to rev-parse for a detached HEAD, which reports "HEAD".

        Raises:
            GitCommandError: If neither lookup succeeds
        """
        result = self.runner.run("symbolic-ref", "--short", "HEAD")
        if result.ok and result.output:
            return result.output

        result = self.runner.run("rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            raise GitCommandError(["rev-parse", "--abbrev-ref", "HEAD"], result.output)
        return result.output

    def is_on_main_branch(self) -> bool:
        try:
            return self.current_branch() in MAIN_BRANCH_NAMES
        except GitCommandError:
            return False

    def main_branch_name(self) -> str:
        """'main' if it exists, else 'master' if it exists, else 'main'."""
        names = {b.name for b in self.list_branches()}
        for candidate in MAIN_BRANCH_NAMES:
            if candidate in names:
                return candidate
        return MAIN_BRANCH_NAMES[0]

    def list_branches(self) -> List[BranchInfo]:
        result = self.runner.run("branch", "--format=%(refname:short)|%(HEAD)")
        if not result.ok:
            logger.debug(f"Branch listing failed: {result.output}")
            return []
        return parse_branches(result.output)

    def list_experiments(self) -> List[BranchInfo]:
        """Experiment branches, newest first by their timestamp suffix."""
        experiments = [b for b in self.list_branches() if is_experiment_branch(b.name)]
        return sorted(experiments, key=lambda b: b.name[-15:], reverse=True)

    def list_backups(self, for_branch: str) -> List[BackupInfo]:
        """Backups for a branch, newest first.

        Each backup also carries the short hash and subject of the commit it
        points at; backups whose commit cannot be read are left out.
        """
        prefix = backup_prefix(for_branch)
        result = self.runner.run("branch", "--format=%(refname:short)")
        if not result.ok:
            logger.debug(f"Branch listing failed: {result.output}")
            return []

        backups = []
        for line in result.output.splitlines():
            name = line.strip()
            if not name.startswith(prefix):
                continue

            info = self.runner.run("log", "-1", "--format=%h|%s", name, "--")
            if not info.ok:
                logger.debug(f"Skipping unreadable backup {name}: {info.output}")
                continue

            commit_hash, _, message = info.output.partition("|")
            backups.append(BackupInfo(
                name=name,
                for_branch=for_branch,
                timestamp=name[len(prefix):],
                commit_hash=commit_hash,
                message=message,
            ))

        return sorted(backups, key=lambda b: b.timestamp, reverse=True)

    # Working tree

    def has_uncommitted_changes(self) -> bool:
        result = self.runner.run("status", "--porcelain")
        return result.ok and result.output != ""

    def changed_files(self) -> List[FileChange]:
        """Every changed path with its classification.

        Raises:
            GitCommandError: If git status fails
        """
        args = ["status", "--porcelain", "-z"]
        result = self.runner.run_raw(*args)
        if not result.ok:
            raise GitCommandError(args, result.output.strip())
        return parse_porcelain(result.output)

    def untracked_files(self) -> List[str]:
        result = self.runner.run_raw("status", "--porcelain", "-z")
        if not result.ok:
            return []
        return [path for code, path in parse_porcelain_entries(result.output) if code == "??"]

    # History

    def commit_history(self, limit: int = 20) -> List[CommitInfo]:
        """Recent commits, most recent first; empty for a repo with no commits."""
        result = self.runner.run("log", f"-{limit}", f"--format={LOG_FORMAT}")
        if not result.ok:
            logger.debug(f"No history available: {result.output}")
            return []
        return parse_log(result.output)

    def last_commit_message(self) -> str:
        result = self.runner.run("log", "-1", "--format=%s")
        return result.output if result.ok else ""

    def head_short_hash(self) -> str:
        result = self.runner.run("rev-parse", "--short", "HEAD")
        return result.output if result.ok else ""

    def stash_head(self) -> str:
        """Hash of the newest stash entry, or "" when the stash is empty."""
        result = self.runner.run("rev-parse", "-q", "--verify", "refs/stash")
        return result.output if result.ok else ""

    def resolve_commit(self, ref: str) -> str:
        """Full hash of the commit a ref points at.

        Raises:
            GitCommandError: If the ref does not name a commit
        """
        args = ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"]
        result = self.runner.run(*args)
        if not result.ok or not result.output:
            raise GitCommandError(args, result.output or f"Unknown revision: {ref}")
        return result.output

    # Remotes

    def remote_url(self) -> str:
        result = self.runner.run("remote", "get-url", "origin")
        return result.output if result.ok else ""

    def has_remote(self) -> bool:
        return self.remote_url() != ""

    # Diffs

    def file_diff(self, path: str) -> str:
        """Unified diff for one path, with fallbacks for new repos and untracked files."""
        full_path = self.work_dir / path
        if full_path.is_dir():
            return f"new directory: {path}\n(contains untracked files)"

        result = self.runner.run("diff", "HEAD", "--color=never", "--", path)
        output = result.output if result.ok else ""
        if not output:
            # No commits yet: diff against the index instead
            result = self.runner.run("diff", "--color=never", "--", path)
            output = result.output if result.ok else ""

        if not output:
            status = self.runner.run("status", "--porcelain", "--", path)
            if status.ok and status.output.startswith("??"):
                return self._untracked_pseudo_diff(path, full_path)
            return NO_CHANGES_TEXT

        return output

    def _untracked_pseudo_diff(self, path: str, full_path: Path) -> str:
        try:
            content = full_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Could not read {full_path}: {e}")
            return READ_ERROR_TEXT

        lines = [f"new file: {path}", "---"]
        lines.extend(f"+ {line}" for line in content.splitlines())
        return "\n".join(lines) + "\n"

    def diff_stat_between(self, from_hash: str, to_hash: Optional[str] = None) -> DiffSummary:
        """Per-file stats from one commit to another, or to the working tree when to_hash is None."""
        args = ["diff", "--numstat", from_hash]
        if to_hash:
            args.append(to_hash)
        result = self.runner.run(*args)
        if not result.ok:
            logger.debug(f"diff --numstat failed: {result.output}")
            return DiffSummary()
        return parse_numstat(result.output)

    def uncommitted_diff_stat(self) -> DiffSummary:
        """Stats for everything not yet committed, untracked files included."""
        result = self.runner.run("diff", "--numstat", "HEAD")
        if not result.ok:
            result = self.runner.run("diff", "--numstat")

        summary = parse_numstat(result.output) if result.ok else DiffSummary()
        for path in self.untracked_files():
            summary.add(DiffStat(
                path=path,
                additions=count_lines(self.work_dir / path),
                is_new=True,
            ))
        return summary

