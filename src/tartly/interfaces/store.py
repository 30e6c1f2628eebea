"""Interface for unit definition storage."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from tartly.units import UnitDefinition


class UnitStore(ABC):
    """Repository of installed unit definitions, keyed by label."""

    @abstractmethod
    def path_for(self, label: str) -> Path:
        """Path the supervisor loads the unit from."""
        pass

    @abstractmethod
    def exists(self, label: str) -> bool:
        pass

    @abstractmethod
    def get(self, label: str) -> UnitDefinition:
        """Load a unit. Raises UnitIOError or UnitFormatError."""
        pass

    @abstractmethod
    def put(self, unit: UnitDefinition) -> Path:
        """Persist a unit (all-or-nothing). Returns its path."""
        pass

    @abstractmethod
    def delete(self, label: str) -> None:
        """Remove a unit. Missing units are ignored."""
        pass

    @abstractmethod
    def list(self) -> List[str]:
        """Sorted labels of all managed units."""
        pass
