"""Rich-based terminal UI."""

from .app import SmoothApp
from .console import make_console

__all__ = ["SmoothApp", "make_console"]
