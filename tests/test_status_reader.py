"""Tests for status parsing and the StatusReader."""

import pytest

from smooth.core.errors import GitCommandError
from smooth.core.models import FileStatus
from smooth.git.status import (
    FIELD_SEP, LOG_FORMAT, NO_CHANGES_TEXT, StatusReader, classify_status_code,
    count_lines, parse_branches, parse_log, parse_numstat, parse_porcelain
)

from conftest import ScriptedRunner


class TestClassifyStatusCode:
    """Test cases for porcelain code classification."""

    @pytest.mark.parametrize("code,expected", [
        ("??", FileStatus.ADDED),
        ("A ", FileStatus.ADDED),
        ("AM", FileStatus.ADDED),
        (" D", FileStatus.DELETED),
        ("D ", FileStatus.DELETED),
        ("R ", FileStatus.RENAMED),
        (" M", FileStatus.MODIFIED),
        ("MM", FileStatus.MODIFIED),
        ("UU", FileStatus.MODIFIED),
    ])
    def test_codes(self, code, expected):
        assert classify_status_code(code) is expected

    def test_added_wins_over_deleted(self):
        assert classify_status_code("AD") is FileStatus.ADDED


class TestParsers:
    """Test cases for the output parsers."""

    def test_porcelain_keeps_leading_space_path(self):
        """The first entry's leading space is part of the status code."""
        output = " M src/app.py\0?? notes.txt\0"
        changes = parse_porcelain(output)

        assert [(c.status, c.path) for c in changes] == [
            (FileStatus.MODIFIED, "src/app.py"),
            (FileStatus.ADDED, "notes.txt"),
        ]

    def test_porcelain_rename_uses_new_path(self):
        output = "R  new name.md\0old name.md\0 M other.py\0"
        changes = parse_porcelain(output)

        assert [(c.status, c.path) for c in changes] == [
            (FileStatus.RENAMED, "new name.md"),
            (FileStatus.MODIFIED, "other.py"),
        ]

    def test_porcelain_empty(self):
        assert parse_porcelain("") == []

    def test_log_allows_pipes_in_subject(self):
        line = FIELD_SEP.join(["abc1234", "Use a | b", "3 days ago", "abc1234ffff"])
        commits = parse_log(line + "\n")

        assert len(commits) == 1
        assert commits[0].message == "Use a | b"
        assert commits[0].full_hash == "abc1234ffff"

    def test_log_skips_malformed_lines(self):
        assert parse_log("garbage\n") == []

    def test_branches(self):
        branches = parse_branches("main| \nexperiment-x-20240102-150405|*\n")

        assert [(b.name, b.is_current) for b in branches] == [
            ("main", False),
            ("experiment-x-20240102-150405", True),
        ]

    def test_numstat_with_binary(self):
        summary = parse_numstat("3\t1\tsrc/a.py\n-\t-\tlogo.png\n10\t0\tdocs/b.md\n")

        assert [f.path for f in summary.files] == ["src/a.py", "logo.png", "docs/b.md"]
        assert summary.files[1].is_binary
        assert summary.total_added == 13
        assert summary.total_deleted == 1

    def test_count_lines(self, temp_dir):
        path = temp_dir / "f.txt"
        path.write_text("one\ntwo\nthree")
        assert count_lines(path) == 3

        path.write_text("")
        assert count_lines(path) == 0

        assert count_lines(temp_dir / "missing.txt") == 0


class TestStatusReader:
    """Test cases for StatusReader queries against a scripted runner."""

    def setup_method(self):
        self.runner = ScriptedRunner()

    def reader(self, work_dir):
        return StatusReader(self.runner, work_dir)

    def test_current_branch(self, temp_dir):
        self.runner.set(["symbolic-ref", "--short", "HEAD"], "main")
        assert self.reader(temp_dir).current_branch() == "main"

    def test_current_branch_detached_head(self, temp_dir):
        self.runner.set(["symbolic-ref", "--short", "HEAD"], "fatal: ref HEAD is not a symbolic ref", ok=False)
        self.runner.set(["rev-parse", "--abbrev-ref", "HEAD"], "HEAD")
        assert self.reader(temp_dir).current_branch() == "HEAD"

    def test_current_branch_failure_raises(self, temp_dir):
        self.runner.set(["symbolic-ref", "--short", "HEAD"], "fatal", ok=False)
        self.runner.set(["rev-parse", "--abbrev-ref", "HEAD"], "fatal: not a git repository", ok=False)

        with pytest.raises(GitCommandError, match="not a git repository"):
            self.reader(temp_dir).current_branch()

    @pytest.mark.parametrize("branches,expected", [
        ("main| \nmaster| \n", "main"),
        ("master|*\nfeature| \n", "master"),
        ("trunk|*\n", "main"),
    ])
    def test_main_branch_name(self, temp_dir, branches, expected):
        self.runner.set(["branch", "--format=%(refname:short)|%(HEAD)"], branches)
        assert self.reader(temp_dir).main_branch_name() == expected

    def test_is_on_main_branch(self, temp_dir):
        self.runner.set(["symbolic-ref", "--short", "HEAD"], "master")
        assert self.reader(temp_dir).is_on_main_branch()

    def test_list_experiments_newest_first(self, temp_dir):
        self.runner.set(["branch", "--format=%(refname:short)|%(HEAD)"], "\n".join([
            "experiment-zebra-20240101-120000| ",
            "main|*",
            "experiment-alpha-20240301-090000| ",
        ]))

        names = [b.name for b in self.reader(temp_dir).list_experiments()]
        assert names == ["experiment-alpha-20240301-090000", "experiment-zebra-20240101-120000"]

    def test_list_backups_sorted_and_filtered(self, temp_dir):
        self.runner.set(["branch", "--format=%(refname:short)"], "\n".join([
            "backup/main/20240101-120000",
            "backup/main/20240301-090000",
            "backup/other/20240401-090000",
            "backup/main/20240201-090000",
            "main",
        ]))
        self.runner.set(["log", "-1", "--format=%h|%s", "backup/main/20240101-120000", "--"], "aaa|First")
        self.runner.set(["log", "-1", "--format=%h|%s", "backup/main/20240301-090000", "--"], "ccc|Third | ok")
        self.runner.set(["log", "-1", "--format=%h|%s", "backup/main/20240201-090000", "--"], "fatal", ok=False)

        backups = self.reader(temp_dir).list_backups("main")

        assert [b.timestamp for b in backups] == ["20240301-090000", "20240101-120000"]
        assert backups[0].commit_hash == "ccc"
        assert backups[0].message == "Third | ok"
        assert backups[0].for_branch == "main"

    def test_changed_files_failure_raises(self, temp_dir):
        self.runner.set(["status", "--porcelain", "-z"], "fatal: not a git repository", ok=False)

        with pytest.raises(GitCommandError):
            self.reader(temp_dir).changed_files()

    def test_has_uncommitted_changes(self, temp_dir):
        reader = self.reader(temp_dir)
        assert not reader.has_uncommitted_changes()

        self.runner.set(["status", "--porcelain"], "?? new.txt")
        assert reader.has_uncommitted_changes()

    def test_commit_history_empty_repo(self, temp_dir):
        self.runner.set(["log", "-20", f"--format={LOG_FORMAT}"],
                        "fatal: your current branch 'main' does not have any commits yet", ok=False)
        assert self.reader(temp_dir).commit_history() == []

    def test_has_remote(self, temp_dir):
        reader = self.reader(temp_dir)
        self.runner.set(["remote", "get-url", "origin"], "error: No such remote 'origin'", ok=False)
        assert not reader.has_remote()

        self.runner.set(["remote", "get-url", "origin"], "git@github.com:me/repo.git")
        assert reader.has_remote()
        assert reader.remote_url() == "git@github.com:me/repo.git"

    def test_stash_head(self, temp_dir):
        reader = self.reader(temp_dir)
        self.runner.set(["rev-parse", "-q", "--verify", "refs/stash"], "", ok=False)
        assert reader.stash_head() == ""

        self.runner.set(["rev-parse", "-q", "--verify", "refs/stash"], "f00dfeed")
        assert reader.stash_head() == "f00dfeed"

    def test_resolve_commit_unknown(self, temp_dir):
        self.runner.set(["rev-parse", "--verify", "--quiet", "nope^{commit}"], "", ok=False)

        with pytest.raises(GitCommandError, match="Unknown revision"):
            self.reader(temp_dir).resolve_commit("nope")


class TestFileDiff:
    """Test cases for the per-file diff fallbacks."""

    def setup_method(self):
        self.runner = ScriptedRunner()

    def test_tracked_file_diff(self, temp_dir):
        self.runner.set(["diff", "HEAD", "--color=never", "--", "a.py"], "diff --git a/a.py b/a.py\n+x")
        diff = StatusReader(self.runner, temp_dir).file_diff("a.py")
        assert diff.startswith("diff --git")

    def test_falls_back_to_index_diff_without_commits(self, temp_dir):
        self.runner.set(["diff", "HEAD", "--color=never", "--", "a.py"], "fatal: bad revision 'HEAD'", ok=False)
        self.runner.set(["diff", "--color=never", "--", "a.py"], "diff --git a/a.py b/a.py")

        assert StatusReader(self.runner, temp_dir).file_diff("a.py") == "diff --git a/a.py b/a.py"

    def test_untracked_file_pseudo_diff(self, temp_dir):
        (temp_dir / "new.txt").write_text("first\nsecond\n")
        self.runner.set(["status", "--porcelain", "--", "new.txt"], "?? new.txt")

        diff = StatusReader(self.runner, temp_dir).file_diff("new.txt")
        assert diff == "new file: new.txt\n---\n+ first\n+ second\n"

    def test_untracked_directory_placeholder(self, temp_dir):
        (temp_dir / "assets").mkdir()

        diff = StatusReader(self.runner, temp_dir).file_diff("assets")
        assert diff == "new directory: assets\n(contains untracked files)"
        assert self.runner.calls == []

    def test_no_changes_placeholder(self, temp_dir):
        assert StatusReader(self.runner, temp_dir).file_diff("same.py") == NO_CHANGES_TEXT


class TestDiffStats:
    """Test cases for numstat-based summaries."""

    def test_uncommitted_includes_untracked_files(self, temp_dir):
        runner = ScriptedRunner()
        runner.set(["diff", "--numstat", "HEAD"], "2\t1\tsrc/a.py")
        runner.set(["status", "--porcelain", "-z"], " M src/a.py\0?? notes.txt\0")
        (temp_dir / "notes.txt").write_text("a\nb\nc\n")

        summary = StatusReader(runner, temp_dir).uncommitted_diff_stat()

        assert [(f.path, f.additions, f.is_new) for f in summary.files] == [
            ("src/a.py", 2, False),
            ("notes.txt", 3, True),
        ]
        assert summary.total_added == 5

    def test_diff_stat_between_failure_is_empty(self, temp_dir):
        runner = ScriptedRunner()
        runner.set(["diff", "--numstat", "bad"], "fatal: bad revision", ok=False)

        summary = StatusReader(runner, temp_dir).diff_stat_between("bad")
        assert summary.files == []
        assert summary.total_added == 0
