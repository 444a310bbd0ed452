"""Tests for the git command runner."""

from unittest.mock import patch

import pytest
from git.exc import GitCommandNotFound

from smooth.git.runner import GitCommandRunner


@pytest.fixture
def git_runner(temp_dir):
    """A runner whose GitPython execute call is mocked."""
    runner = GitCommandRunner(temp_dir)
    with patch.object(type(runner._git), "execute") as execute:
        runner.execute = execute
        yield runner


class TestGitCommandRunner:
    """Test cases for output handling around GitPython's execute."""

    def test_run_combines_and_trims(self, git_runner):
        git_runner.execute.return_value = (0, "done\n", "warning: LF will be replaced by CRLF\n")

        result = git_runner.run("commit", "-m", "x")

        assert result.ok
        assert result.output == "done\nwarning: LF will be replaced by CRLF"

    def test_run_raw_success_keeps_only_stdout(self, git_runner):
        git_runner.execute.return_value = (0, " M a.py\0?? b.py\0", "warning: could not open directory 'x/'\n")

        result = git_runner.run_raw("status", "--porcelain", "-z")

        assert result.ok
        assert result.output == " M a.py\0?? b.py\0"

    def test_run_raw_failure_includes_stderr(self, git_runner):
        git_runner.execute.return_value = (128, "", "fatal: not a git repository\n")

        result = git_runner.run_raw("status")

        assert not result.ok
        assert result.output == "fatal: not a git repository\n"

    def test_execute_arguments(self, git_runner):
        git_runner.execute.return_value = (0, "", "")

        git_runner.run("status", "--porcelain")

        git_runner.execute.assert_called_once_with(
            ["git", "status", "--porcelain"],
            with_extended_output=True,
            with_exceptions=False,
            strip_newline_in_stdout=False,
        )

    def test_missing_git_executable(self, git_runner):
        git_runner.execute.side_effect = GitCommandNotFound("git", "not found")

        result = git_runner.run("status")

        assert not result.ok
        assert "not found" in result.output
