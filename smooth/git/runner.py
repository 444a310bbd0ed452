"""The single I/O boundary to the git executable."""

import logging
from pathlib import Path
from typing import Tuple, Union

import git
from git.exc import GitCommandNotFound

from ..core.interfaces import CommandResult, ICommandRunner
from ..core.errors import NotARepositoryError

logger = logging.getLogger(__name__)


def find_repository_root(path: Union[str, Path]) -> Path:
    """Return the top-level working directory of the repository containing path.

    Raises:
        NotARepositoryError: If path is not inside a git work tree
    """
    try:
        repo = git.Repo(str(path), search_parent_directories=True)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError):
        raise NotARepositoryError(path)

    if repo.bare or repo.working_tree_dir is None:
        raise NotARepositoryError(path)

    return Path(repo.working_tree_dir)


class GitCommandRunner(ICommandRunner):
    """Runs git through GitPython's command wrapper.

    Each call blocks until git exits. There is no retry and no timeout; a
    push over a slow network simply takes as long as it takes.
    """

    def __init__(self, work_dir: Union[str, Path]):
        """Initialize runner.

        Args:
            work_dir: Directory git is run from (the repository top level)
        """
        self.work_dir = Path(work_dir)
        self._git = git.Git(str(self.work_dir))

    def run(self, *args: str) -> CommandResult:
        """Run git with args and return trimmed combined output."""
        status, stdout, stderr = self._execute(args)
        return CommandResult(_combine(stdout, stderr).strip(), status == 0)

    def run_raw(self, *args: str) -> CommandResult:
        """Run git with args and keep leading/trailing whitespace.

        Needed for porcelain output, where a leading space is significant.
        On success only stdout is returned, so warnings git prints to stderr
        never end up among the parsed records.
        """
        status, stdout, stderr = self._execute(args)
        if status == 0:
            return CommandResult(stdout, True)
        return CommandResult(_combine(stdout, stderr), False)

    def _execute(self, args: Tuple[str, ...]) -> Tuple[int, str, str]:
        command = ["git", *args]
        logger.debug(f"Running: {' '.join(command)}")

        try:
            status, stdout, stderr = self._git.execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                strip_newline_in_stdout=False,
            )
        except GitCommandNotFound as e:
            logger.error(f"git executable not found: {e}")
            return 1, "", str(e)

        if status != 0:
            logger.debug(f"git {args[0] if args else ''} exited {status}: {_combine(stdout, stderr).strip()}")

        return status, stdout or "", stderr or ""


def _combine(stdout: str, stderr: str) -> str:
    # stdout first, then stderr; git writes progress and errors to stderr
    if stdout and stderr:
        output = stdout if stdout.endswith("\n") else stdout + "\n"
        return output + stderr
    return stdout or stderr or ""
