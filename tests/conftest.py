"""Test configuration and fixtures."""

import os
import shutil
import subprocess
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from smooth.core.config import ConfigManager
from smooth.core.interfaces import CommandResult, ICommandRunner


GIT_AVAILABLE = shutil.which("git") is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git executable not installed")


class ScriptedRunner(ICommandRunner):
    """Command runner returning canned results keyed by the exact argument tuple.

    Unscripted commands succeed with empty output. Every call is recorded.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def set(self, args, output="", ok=True):
        self.responses[tuple(args)] = CommandResult(output, ok)

    def run(self, *args):
        self.calls.append(args)
        return self.responses.get(args, CommandResult("", True))

    def run_raw(self, *args):
        return self.run(*args)

    def commands(self):
        """First argument of every call, in order."""
        return [call[0] for call in self.calls]


class FixedClock:
    """Clock that returns a fixed moment, advanced one second per call."""

    def __init__(self, start=datetime(2024, 1, 2, 15, 4, 5)):
        self.current = start

    def __call__(self):
        moment = self.current
        self.current = self.current + timedelta(seconds=1)
        return moment


@pytest.fixture
def runner():
    """A scripted runner with no responses yet."""
    return ScriptedRunner()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config_manager(temp_dir):
    """Config manager writing to a throwaway config file."""
    return ConfigManager(temp_dir / "smooth" / "config.json")


def git(repo: Path, *args: str) -> str:
    """Run git in repo for test setup and return its stdout."""
    env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
    result = subprocess.run(
        ["git", *args], cwd=str(repo), env=env, check=True,
        capture_output=True, text=True,
    )
    return result.stdout


@pytest.fixture
def temp_repo(temp_dir):
    """A real git repository on 'main' with one commit containing README.md."""
    if not GIT_AVAILABLE:
        pytest.skip("git executable not installed")

    repo = temp_dir / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.name", "Smooth Tests")
    git(repo, "config", "user.email", "tests@example.com")
    git(repo, "config", "commit.gpgsign", "false")

    (repo / "README.md").write_text("hello\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "Initial commit")

    return repo
