"""JSON API routes for the Smooth browser UI."""

import asyncio
import logging
from concurrent.futures import Executor
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from ...core.errors import NoRemoteError, PreconditionError
from ...core.models import FileAction
from ...core.service import SmoothService

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


# Pydantic models for request bodies
class SaveRequest(BaseModel):
    """Save request.

    Either fileActions (path -> save/revert/skip/ignore) or files (the paths
    to save, everything else skipped) may be given; with neither, every
    changed file is saved.
    """
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    file_actions: Optional[Dict[str, str]] = Field(default=None, alias="fileActions")
    files: Optional[List[str]] = None


class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    remote_url: Optional[str] = Field(default=None, alias="remoteUrl")


class RestoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    commit_hash: str = Field(alias="commitHash")


class RestoreBackupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    backup_name: str = Field(alias="backupName")


class ExperimentCreateRequest(BaseModel):
    name: str


class ExperimentSwitchRequest(BaseModel):
    branch: str


class IgnoreRequest(BaseModel):
    pattern: str


# Dependency to get the service from app state
def get_service(request: Request) -> SmoothService:
    """Get the repository service the server was started with."""
    return request.app.state.service


def get_executor(request: Request) -> Executor:
    """Get the single-worker executor all git calls go through."""
    return request.app.state.executor


async def run_git(executor: Executor, fn: Callable[..., T], *args: Any) -> T:
    """Run a blocking service call on the git worker and await the result."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, partial(fn, *args))


@router.get("/status")
async def get_status(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Current branch and headline flags."""
    status = await run_git(executor, service.status)
    return status.to_dict()


@router.get("/changes")
async def get_changes(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Changed files with their classification."""
    changes = await run_git(executor, service.changed_files)
    return [change.to_dict() for change in changes]


@router.get("/diff")
async def get_diff(
    path: Optional[str] = None,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Diff of one file, or per-file stats of all unsaved changes without a path."""
    if path:
        diff = await run_git(executor, service.file_diff, path)
        return {"path": path, "diff": diff}

    summary = await run_git(executor, service.uncommitted_diff_stat)
    return summary.to_dict()


def _actions_from_request(req: SaveRequest, changed_paths: List[str]) -> Dict[str, str]:
    if req.file_actions is not None:
        return req.file_actions
    if req.files is not None:
        selected = set(req.files)
        return {
            path: (FileAction.SAVE.value if path in selected else FileAction.SKIP_ONCE.value)
            for path in changed_paths
        }
    return {}


@router.post("/save")
async def save(
    req: SaveRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Apply per-file actions and commit."""
    def do_save():
        changed = [change.path for change in service.changed_files()]
        actions = _actions_from_request(req, changed)
        if not req.message.strip() and not actions:
            return service.quicksave()
        return service.save(req.message, actions)

    result = await run_git(executor, do_save)
    return result.to_dict()


@router.post("/sync")
async def sync(
    req: Optional[SyncRequest] = Body(default=None),
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Push; answers needsRemote instead of failing when there is no origin."""
    remote_url = req.remote_url if req else None
    try:
        branch = await run_git(executor, service.sync, remote_url)
    except NoRemoteError:
        return {
            "needsRemote": True,
            "message": "No GitHub remote configured. Please provide a repository URL.",
        }
    return {"status": "ok", "branch": branch}


@router.get("/commits")
async def get_commits(
    limit: int = 20,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Recent commits, most recent first."""
    commits = await run_git(executor, service.commit_history, limit)
    return [commit.to_dict() for commit in commits]


@router.post("/restore")
async def restore(
    req: RestoreRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Back up the current state, then reset to the commit."""
    result = await run_git(executor, service.restore, req.commit_hash)
    return result.to_dict()


@router.get("/restore/preview")
async def restore_preview(
    commit: str = Query(..., alias="hash"),
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """What a restore to this commit would undo."""
    if not commit.strip():
        raise PreconditionError("hash is required")
    summary = await run_git(executor, service.restore_preview, commit.strip())
    return summary.to_dict()


@router.get("/backups")
async def get_backups(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    """Backups of the current branch, newest first."""
    backups = await run_git(executor, service.backups)
    return [backup.to_dict() for backup in backups]


@router.post("/restore-backup")
async def restore_backup(
    req: RestoreBackupRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    result = await run_git(executor, service.restore_backup, req.backup_name)
    return result.to_dict()


@router.get("/experiments")
async def get_experiments(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    experiments = await run_git(executor, service.experiments)
    return [branch.to_dict() for branch in experiments]


@router.post("/experiment/create")
async def create_experiment(
    req: ExperimentCreateRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    branch = await run_git(executor, service.create_experiment, req.name)
    return {"status": "ok", "branch": branch}


@router.post("/experiment/keep")
async def keep_experiment(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    branch = await run_git(executor, service.keep_experiment)
    return {"status": "ok", "branch": branch}


@router.post("/experiment/abandon")
async def abandon_experiment(
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    branch = await run_git(executor, service.abandon_experiment)
    return {"status": "ok", "branch": branch}


@router.post("/experiment/switch")
async def switch_experiment(
    req: ExperimentSwitchRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    result = await run_git(executor, service.switch_experiment, req.branch)
    return result.to_dict()


@router.post("/gitignore")
async def add_to_gitignore(
    req: IgnoreRequest,
    service: SmoothService = Depends(get_service),
    executor: Executor = Depends(get_executor),
):
    await run_git(executor, service.add_to_ignore, req.pattern)
    return {"status": "ok"}


@router.get("/config")
async def get_config(service: SmoothService = Depends(get_service)):
    return service.get_config().to_dict()


@router.post("/config")
async def update_config(
    partial: Dict[str, Any] = Body(...),
    service: SmoothService = Depends(get_service),
):
    """Update only the provided settings; maxBackups is clamped to 1-1000."""
    config = service.set_config(partial)
    return config.to_dict()
