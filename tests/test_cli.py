"""Tests for the command-line interface."""

import json
from unittest.mock import ANY, Mock, patch

import pytest
from click.testing import CliRunner

from smooth.cli.main import cli, parse_config_value
from smooth.core.errors import NoRemoteError, NotARepositoryError, PreconditionError
from smooth.core.models import (
    BackupInfo, CommitInfo, DiffStat, DiffSummary, FileAction, FileChange, FileStatus,
    RepositoryStatus, RestoreResult, SaveResult
)


@pytest.fixture
def service():
    service = Mock()
    service.status.return_value = RepositoryStatus(
        branch="main", has_changes=True, is_on_main=True, main_branch="main"
    )
    service.changed_files.return_value = [
        FileChange(FileStatus.MODIFIED, "app.py"),
        FileChange(FileStatus.ADDED, "notes.txt"),
    ]
    service.last_commit_message.return_value = "Initial commit"
    return service


class TestCLIBasics:
    """Test CLI wiring that does not need a repository."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'Smooth' in result.output
        for command in ('status', 'save', 'restore', 'experiment', 'sync', 'config', 'web'):
            assert command in result.output

    def test_not_a_repository(self, temp_dir):
        with patch('smooth.cli.main.SmoothService.open', side_effect=NotARepositoryError(temp_dir)):
            result = self.runner.invoke(cli, ['-p', str(temp_dir), 'status'])

        assert result.exit_code == 1
        assert 'git init' in result.output

    def test_config_show_outside_repository(self, temp_dir):
        config_path = temp_dir / 'config.json'

        with patch('smooth.cli.main.SmoothService.open') as open_service:
            result = self.runner.invoke(cli, ['--config', str(config_path), 'config', 'show'])

        assert result.exit_code == 0
        open_service.assert_not_called()
        assert 'maxBackups: 10' in result.output
        assert 'autoSyncEnabled: off' in result.output
        assert 'theme: coral' in result.output

    def test_config_set(self, temp_dir):
        config_path = temp_dir / 'config.json'

        result = self.runner.invoke(cli, ['--config', str(config_path), 'config', 'set', 'maxBackups', '20'])

        assert result.exit_code == 0
        assert '✓ maxBackups = 20' in result.output
        assert json.loads(config_path.read_text())['maxBackups'] == 20

    def test_config_set_rejects_unknown_key(self, temp_dir):
        config_path = temp_dir / 'config.json'

        result = self.runner.invoke(cli, ['--config', str(config_path), 'config', 'set', 'colour', 'red'])

        assert result.exit_code == 1
        assert 'Unknown setting: colour' in result.output
        assert not config_path.exists()

    @pytest.mark.parametrize('raw,expected', [
        ('true', True), ('ON', True), ('no', False), ('42', 42), ('ocean', 'ocean'),
    ])
    def test_parse_config_value(self, raw, expected):
        assert parse_config_value(raw) == expected


class TestCLICommands:
    """Test commands against a mocked service."""

    def setup_method(self):
        self.runner = CliRunner()

    def invoke(self, service, *args):
        with patch('smooth.cli.main.SmoothService.open', return_value=service):
            return self.runner.invoke(cli, list(args))

    def test_status(self, service):
        result = self.invoke(service, 'status')

        assert result.exit_code == 0
        assert 'On branch main' in result.output
        assert '2 changed file(s)' in result.output
        assert 'notes.txt' in result.output
        assert 'Last save: Initial commit' in result.output

    def test_status_clean(self, service):
        service.changed_files.return_value = []

        result = self.invoke(service, 'status')
        assert '✓ Everything is saved' in result.output

    def test_diff_summary(self, service):
        summary = DiffSummary()
        summary.add(DiffStat("app.py", 3, 1))
        summary.add(DiffStat("notes.txt", 2, 0, is_new=True))
        service.uncommitted_diff_stat.return_value = summary

        result = self.invoke(service, 'diff')

        assert result.exit_code == 0
        assert 'notes.txt (new)' in result.output
        assert 'Total: +5 -1' in result.output

    def test_save_without_options_quicksaves(self, service):
        service.quicksave.return_value = SaveResult(saved=["app.py", "notes.txt"], commit_hash="abc1234")

        result = self.invoke(service, 'save')

        assert result.exit_code == 0
        service.quicksave.assert_called_once_with()
        assert '✓ 2 saved, 0 reverted, 0 ignored, 0 skipped' in result.output
        assert 'Commit: abc1234' in result.output

    def test_save_with_actions(self, service):
        service.save.return_value = SaveResult(saved=["app.py"], reverted=["notes.txt"], commit_hash="abc1234")

        result = self.invoke(service, 'save', '-m', 'Tidy up', '--revert', 'notes.txt')

        assert result.exit_code == 0
        service.save.assert_called_once_with('Tidy up', {'notes.txt': FileAction.REVERT})

    def test_save_generates_message_when_only_actions_given(self, service):
        service.save.return_value = SaveResult(ignored=["debug.log"])

        self.invoke(service, 'save', '--ignore', 'debug.log')
        service.save.assert_called_once_with(ANY, {'debug.log': FileAction.IGNORE})

    def test_save_reports_sync_failure(self, service):
        service.quicksave.return_value = SaveResult(
            saved=["app.py"], commit_hash="abc1234", auto_synced=True, sync_error="rejected"
        )

        result = self.invoke(service, 'save')

        assert result.exit_code == 0
        assert 'Sync failed: rejected' in result.output

    def test_save_failure_exits(self, service):
        service.quicksave.side_effect = PreconditionError("No changes to save.")

        result = self.invoke(service, 'save')

        assert result.exit_code == 1
        assert '✗ No changes to save.' in result.output

    def test_log(self, service):
        service.commit_history.return_value = [CommitInfo("abc1234", "Add login", "2 hours ago", "abc1234" * 5)]

        result = self.invoke(service, 'log', '-n', '5')

        service.commit_history.assert_called_once_with(5)
        assert 'Add login' in result.output

    def test_restore(self, service):
        service.restore_preview.return_value = DiffSummary()
        service.restore.return_value = RestoreResult(
            target="abc1234", backup_name="backup/main/20240102-150405",
            trimmed=["backup/main/20230101-000000"],
        )

        result = self.invoke(service, 'restore', 'abc1234', '-y')

        assert result.exit_code == 0
        service.restore.assert_called_once_with('abc1234')
        assert 'backup/main/20240102-150405' in result.output
        assert 'Removed old backup: backup/main/20230101-000000' in result.output

    def test_restore_cancelled(self, service):
        service.restore_preview.return_value = DiffSummary()

        with patch('smooth.cli.main.SmoothService.open', return_value=service):
            result = self.runner.invoke(cli, ['restore', 'abc1234'], input='n\n')

        assert 'Restore cancelled.' in result.output
        service.restore.assert_not_called()

    def test_backups(self, service):
        service.backups.return_value = [
            BackupInfo("backup/main/20240102-150405", "main", "20240102-150405", "abc1234", "WIP")
        ]

        result = self.invoke(service, 'backups')
        assert 'backup/main/20240102-150405  abc1234  WIP' in result.output

    def test_experiment_keep_refused(self, service):
        service.keep_experiment.side_effect = PreconditionError("Save or revert your changes before you keep this experiment.")

        result = self.invoke(service, 'experiment', 'keep')

        assert result.exit_code == 1
        assert 'Save or revert your changes' in result.output

    def test_experiment_create(self, service):
        service.create_experiment.return_value = "experiment-dark-mode-20240102-150405"

        result = self.invoke(service, 'experiment', 'create', 'Dark mode')

        assert result.exit_code == 0
        service.create_experiment.assert_called_once_with('Dark mode')
        assert 'experiment-dark-mode-20240102-150405' in result.output

    def test_ignore(self, service):
        result = self.invoke(service, 'ignore', '*.log')

        service.add_to_ignore.assert_called_once_with('*.log')
        assert '✓ Added *.log to .gitignore' in result.output

    def test_sync_without_remote(self, service):
        service.sync.side_effect = NoRemoteError()

        result = self.invoke(service, 'sync')

        assert result.exit_code == 1
        assert 'No GitHub remote configured' in result.output
        assert 'smooth sync --remote' in result.output

    def test_sync_with_remote_url(self, service):
        service.sync.return_value = "main"

        result = self.invoke(service, 'sync', '--remote', 'https://github.com/me/repo.git')

        assert result.exit_code == 0
        service.sync.assert_called_once_with('https://github.com/me/repo.git')
        assert '✓ Synced main to GitHub' in result.output
