"""Main CLI entry point for Smooth."""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler

from ..core.config import ConfigManager
from ..core.errors import NoRemoteError, NotARepositoryError, SmoothError
from ..core.models import FileAction
from ..core.service import SmoothService

logger = logging.getLogger(__name__)

# Subcommands that work outside a repository
NO_REPO_COMMANDS = {"config"}


def setup_logging(verbose: bool) -> None:
    """Route log records to stderr through rich so they never mix with menu output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


@contextmanager
def handle_errors():
    """Print Smooth errors the way every command reports failure, then exit 1."""
    try:
        yield
    except SmoothError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)


def _service(ctx: click.Context) -> SmoothService:
    return ctx.obj['service']


@click.group(invoke_without_command=True)
@click.option('--config', '-c', type=click.Path(dir_okay=False),
              help='Path to configuration file')
@click.option('--project-root', '-p', type=click.Path(exists=True, file_okay=False),
              help='Repository directory (defaults to the current directory)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], project_root: Optional[str], verbose: bool):
    """Smooth - git for people who would rather not think about git.

    Run without a command to open the interactive menu.
    """
    ctx.ensure_object(dict)
    setup_logging(verbose)

    config_manager = ConfigManager(Path(config) if config else None)
    project_path = Path(project_root) if project_root else Path.cwd()

    ctx.obj['config_manager'] = config_manager
    ctx.obj['verbose'] = verbose

    if ctx.invoked_subcommand in NO_REPO_COMMANDS or ctx.resilient_parsing:
        return

    try:
        ctx.obj['service'] = SmoothService.open(project_path, config_manager)
    except NotARepositoryError:
        click.echo(f"✗ {project_path.resolve()} is not a git repository.", err=True)
        click.echo("\nTo start tracking this folder with smooth, run:", err=True)
        click.echo("  git init", err=True)
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        from ..ui import SmoothApp

        SmoothApp(ctx.obj['service']).run()


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the current branch and changed files."""
    service = _service(ctx)

    with handle_errors():
        repo_status = service.status()
        changes = service.changed_files()

    click.echo(f"On branch {repo_status.branch}")
    if repo_status.on_experiment:
        click.echo(f"Experiment (main line is {repo_status.main_branch})")
    click.echo(f"Remote: {repo_status.remote_url or 'none'}")
    last = service.last_commit_message()
    if last:
        click.echo(f"Last save: {last}")

    if not changes:
        click.echo("✓ Everything is saved")
        return

    click.echo(f"\n{len(changes)} changed file(s):")
    for change in changes:
        click.echo(f"  {change.status.value:<9} {change.path}")


@cli.command()
@click.argument('path', required=False)
@click.pass_context
def diff(ctx: click.Context, path: Optional[str]):
    """Show the diff of one file, or a summary of all unsaved changes."""
    service = _service(ctx)

    with handle_errors():
        if path:
            click.echo(service.file_diff(path))
            return

        summary = service.uncommitted_diff_stat()

    if not summary.files:
        click.echo("No unsaved changes")
        return

    for stat in summary.files:
        counts = "binary" if stat.is_binary else f"+{stat.additions} -{stat.deletions}"
        suffix = " (new)" if stat.is_new else ""
        click.echo(f"  {counts:>12}  {stat.path}{suffix}")
    click.echo(f"Total: +{summary.total_added} -{summary.total_deleted}")


@cli.command()
@click.option('--message', '-m', help='Describe what you changed (generated when omitted)')
@click.option('--revert', 'revert_paths', multiple=True, help='Discard changes to this file')
@click.option('--skip', 'skip_paths', multiple=True, help='Leave this file out of this save')
@click.option('--ignore', 'ignore_paths', multiple=True, help='Add this file to .gitignore')
@click.pass_context
def save(ctx: click.Context, message: Optional[str], revert_paths: Tuple[str, ...],
         skip_paths: Tuple[str, ...], ignore_paths: Tuple[str, ...]):
    """Save changed files. Files not named in an option are saved."""
    service = _service(ctx)

    actions = {}
    for paths, action in ((revert_paths, FileAction.REVERT),
                          (skip_paths, FileAction.SKIP_ONCE),
                          (ignore_paths, FileAction.IGNORE)):
        for path in paths:
            actions[path] = action

    with handle_errors():
        if message is None and not actions:
            result = service.quicksave()
        else:
            message = message if message is not None else service.orchestrator.quicksave_message()
            result = service.save(message, actions)

    parts = [f"{len(result.saved)} saved", f"{len(result.reverted)} reverted",
             f"{len(result.ignored)} ignored", f"{len(result.skipped)} skipped"]
    click.echo(f"✓ {', '.join(parts)}")
    if result.commit_hash:
        click.echo(f"  Commit: {result.commit_hash}")
    if result.auto_synced:
        if result.sync_error:
            click.echo(f"✗ Sync failed: {result.sync_error}", err=True)
        else:
            click.echo("✓ Synced to GitHub")


@cli.command()
@click.option('--limit', '-n', type=int, default=20, help='Number of saves to show')
@click.pass_context
def log(ctx: click.Context, limit: int):
    """List recent saves."""
    commits = _service(ctx).commit_history(limit)

    if not commits:
        click.echo("No saves yet")
        return

    for commit in commits:
        click.echo(f"{commit.short_hash}  {commit.relative_time:<16} {commit.message}")


@cli.command()
@click.argument('commit')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def restore(ctx: click.Context, commit: str, yes: bool):
    """Go back to an earlier save. A backup of the current state is kept."""
    service = _service(ctx)

    with handle_errors():
        preview = service.restore_preview(commit)

    if preview.files:
        click.echo("Changes since that save that will be undone:")
        for stat in preview.files:
            click.echo(f"  {stat.path}")

    if not yes and not click.confirm(f"Restore to {commit}?"):
        click.echo("Restore cancelled.")
        return

    with handle_errors():
        result = service.restore(commit)

    click.echo(f"✓ Restored to {commit}")
    click.echo(f"  Backup of previous state: {result.backup_name}")
    for name in result.trimmed:
        click.echo(f"  Removed old backup: {name}")


@cli.command()
@click.pass_context
def backups(ctx: click.Context):
    """List backups of the current branch, newest first."""
    with handle_errors():
        entries = _service(ctx).backups()

    if not entries:
        click.echo("No backups for this branch")
        return

    for backup in entries:
        click.echo(f"{backup.name}  {backup.commit_hash}  {backup.message}")


@cli.command(name='restore-backup')
@click.argument('name')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def restore_backup(ctx: click.Context, name: str, yes: bool):
    """Restore a backup. The current state is itself backed up first."""
    if not yes and not click.confirm(f"Restore {name}?"):
        click.echo("Restore cancelled.")
        return

    with handle_errors():
        result = _service(ctx).restore_backup(name)

    click.echo(f"✓ Restored {name}")
    click.echo(f"  Backup of previous state: {result.backup_name}")


@cli.group()
def experiment():
    """Try things out on a separate branch."""
    pass


@experiment.command(name='list')
@click.pass_context
def experiment_list(ctx: click.Context):
    """List experiments, newest first."""
    experiments = _service(ctx).experiments()

    if not experiments:
        click.echo("No experiments")
        return

    for branch in experiments:
        marker = "*" if branch.is_current else " "
        click.echo(f"{marker} {branch.name}")


@experiment.command(name='create')
@click.argument('name')
@click.pass_context
def experiment_create(ctx: click.Context, name: str):
    """Start a new experiment and switch to it."""
    with handle_errors():
        branch = _service(ctx).create_experiment(name)
    click.echo(f"✓ Now on {branch}")


@experiment.command(name='keep')
@click.pass_context
def experiment_keep(ctx: click.Context):
    """Merge the current experiment into main."""
    with handle_errors():
        name = _service(ctx).keep_experiment()
    click.echo(f"✓ Kept {name}")


@experiment.command(name='abandon')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def experiment_abandon(ctx: click.Context, yes: bool):
    """Delete the current experiment and go back to main."""
    if not yes and not click.confirm("Throw this experiment away?"):
        click.echo("Abandon cancelled.")
        return

    with handle_errors():
        name = _service(ctx).abandon_experiment()
    click.echo(f"✓ Abandoned {name}")


@experiment.command(name='switch')
@click.argument('name')
@click.pass_context
def experiment_switch(ctx: click.Context, name: str):
    """Switch to an experiment (or main), carrying unsaved changes along."""
    with handle_errors():
        result = _service(ctx).switch_experiment(name)

    click.echo(f"✓ Now on {result.branch}")
    if result.warning:
        click.echo(f"⚠ {result.warning}", err=True)


@cli.command()
@click.argument('pattern')
@click.pass_context
def ignore(ctx: click.Context, pattern: str):
    """Add a pattern to .gitignore."""
    with handle_errors():
        _service(ctx).add_to_ignore(pattern)
    click.echo(f"✓ Added {pattern} to .gitignore")


@cli.command()
@click.option('--remote', 'remote_url', help='Repository URL to add as origin if none is set')
@click.pass_context
def sync(ctx: click.Context, remote_url: Optional[str]):
    """Push the current branch to GitHub."""
    try:
        branch = _service(ctx).sync(remote_url)
    except NoRemoteError as e:
        click.echo(str(e), err=True)
        click.echo("\nOr pass the URL directly: smooth sync --remote <url>", err=True)
        sys.exit(1)
    except SmoothError as e:
        click.echo(f"✗ Sync failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Synced {branch} to GitHub")


@cli.group(name='config')
def config_group():
    """Show or change settings."""
    pass


@config_group.command(name='show')
@click.pass_context
def config_show(ctx: click.Context):
    """Show current configuration."""
    config_manager = ctx.obj['config_manager']
    config = config_manager.load_config()

    click.echo(f"Configuration file: {config_manager.get_config_path()}")
    for key, value in config.to_dict().items():
        click.echo(f"  {key}: {_format_value(value)}")


@config_group.command(name='set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str):
    """Change one setting, e.g. `smooth config set maxBackups 20`."""
    config_manager = ctx.obj['config_manager']

    with handle_errors():
        config = config_manager.update_config({key: parse_config_value(value)})

    click.echo(f"✓ {key} = {_format_value(config.to_dict()[key])}")


def parse_config_value(value: str) -> Any:
    """Interpret a command-line value as bool, int or string."""
    lowered = value.strip().lower()
    if lowered in ("true", "on", "yes"):
        return True
    if lowered in ("false", "off", "no"):
        return False
    try:
        return int(lowered)
    except ValueError:
        return value.strip()


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


@cli.command()
@click.option('--host', default='127.0.0.1', help='Address to bind')
@click.option('--port', type=int, default=3000, help='Port to listen on')
@click.option('--no-browser', is_flag=True, help='Do not open a browser window')
@click.pass_context
def web(ctx: click.Context, host: str, port: int, no_browser: bool):
    """Open the browser interface."""
    from ..web.server import SmoothWebServer

    server = SmoothWebServer(_service(ctx), host=host, port=port)
    click.echo(f"✓ smooth is running at http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")
    server.run(open_browser=not no_browser)


if __name__ == '__main__':
    cli()
