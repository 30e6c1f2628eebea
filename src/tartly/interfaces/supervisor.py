"""Interface for the OS process supervisor (launchd)."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional


class SupervisorClient(ABC):
    """Abstract interface for supervisor operations.

    Every mutating call raises ExternalToolError when the supervisor
    rejects it.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'launchd')."""
        pass

    @abstractmethod
    def register(self, unit_path: Path) -> None:
        """Load a unit definition."""
        pass

    @abstractmethod
    def deregister(self, unit_path: Path) -> None:
        """Unload a unit definition."""
        pass

    @abstractmethod
    def start(self, label: str) -> None:
        """Ask the supervisor to start a loaded unit."""
        pass

    @abstractmethod
    def stop(self, label: str) -> None:
        """Ask the supervisor to stop a loaded unit."""
        pass

    @abstractmethod
    def list_agents(self) -> Dict[str, Optional[int]]:
        """Loaded labels mapped to their PID, or None when not running."""
        pass
