"""Exception hierarchy shared by the git layer, the workflows and the front-ends."""

from typing import Sequence


class SmoothError(Exception):
    """Base exception for all Smooth errors."""
    pass


class NotARepositoryError(SmoothError):
    """Raised when the working directory is not inside a git repository."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Not a git repository: {path}")


class GitCommandError(SmoothError):
    """A git invocation exited non-zero.

    The message is the combined output git printed, which is usually the
    most useful thing to show the user.
    """

    def __init__(self, args: Sequence[str], output: str):
        self.command_args = list(args)
        self.output = output
        super().__init__(output or f"git {' '.join(self.command_args)} failed")


class NoRemoteError(GitCommandError):
    """Push attempted without an 'origin' remote."""

    MESSAGE = (
        "No GitHub remote configured. To set one up:\n\n"
        "1. Create a repository on GitHub\n"
        "2. Run: git remote add origin https://github.com/USERNAME/REPO.git\n"
        "3. Try syncing again"
    )

    def __init__(self):
        super().__init__(["push"], self.MESSAGE)


class PreconditionError(SmoothError):
    """The repository is not in a state where the requested action is allowed."""
    pass


class ConfigError(SmoothError):
    """A configuration update was rejected."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
