"""Thin layer over the git executable: runner, status reader and mutating operations."""

from .runner import GitCommandRunner, find_repository_root
from .status import StatusReader
from .operations import GitOperations

__all__ = [
    'GitCommandRunner',
    'find_repository_root',
    'StatusReader',
    'GitOperations',
]
