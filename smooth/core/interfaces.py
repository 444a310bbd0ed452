"""Core interfaces and abstract base classes for Smooth."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, NamedTuple


class CommandResult(NamedTuple):
    """Outcome of one git invocation: trimmed combined output and success flag."""
    output: str
    ok: bool


class ICommandRunner(ABC):
    """Interface for invoking the git executable."""

    @abstractmethod
    def run(self, *args: str) -> CommandResult:
        """Run git with args, returning whitespace-trimmed combined output."""
        pass

    @abstractmethod
    def run_raw(self, *args: str) -> CommandResult:
        """Run git with args, returning the combined output untouched."""
        pass


class IConfigManager(ABC):
    """Interface for configuration management."""

    @abstractmethod
    def load_config(self) -> Any:
        """Load configuration, falling back to defaults."""
        pass

    @abstractmethod
    def save_config(self, config: Any) -> bool:
        """Persist configuration, replacing the whole file."""
        pass

    @abstractmethod
    def get_default_config(self) -> Any:
        """Get default configuration values."""
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """Validate a (partial) configuration document and return any errors."""
        pass

    @abstractmethod
    def get_config_path(self) -> Path:
        """Get the path to the configuration file."""
        pass
