"""Unit store backends: a launch agents directory, or memory."""

from pathlib import Path
from typing import Any, Dict, List

from ..config import Settings
from ..errors import UnitIOError
from ..interfaces.store import UnitStore
from ..naming import is_managed_label
from ..units import UnitDefinition, read_unit, write_unit


class DirectoryUnitStore(UnitStore):
    """One plist per label under ``settings.unit_dir``."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.root = settings.unit_dir

    def path_for(self, label: str) -> Path:
        return self.root / f"{label}.plist"

    def exists(self, label: str) -> bool:
        return self.path_for(label).is_file()

    def get(self, label: str) -> UnitDefinition:
        return read_unit(self.path_for(label))

    def put(self, unit: UnitDefinition) -> Path:
        return write_unit(unit, self.path_for(unit.label))

    def delete(self, label: str) -> None:
        path = self.path_for(label)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise UnitIOError(f"Failed to delete unit definition {path}: {e}") from e

    def list(self) -> List[str]:
        if not self.root.is_dir():
            return []
        labels = []
        for path in self.root.glob(f"{self.settings.label_base}.*.plist"):
            if path.is_file() and is_managed_label(path.stem, self.settings):
                labels.append(path.stem)
        return sorted(labels)


class InMemoryUnitStore(UnitStore):
    """Dict-backed store; units are kept in their plist form."""

    def __init__(self, settings: Settings, root: Path = Path("/memory")):
        self.settings = settings
        self.root = root
        self._units: Dict[str, Dict[str, Any]] = {}

    def path_for(self, label: str) -> Path:
        return self.root / f"{label}.plist"

    def exists(self, label: str) -> bool:
        return label in self._units

    def get(self, label: str) -> UnitDefinition:
        if label not in self._units:
            raise UnitIOError(f"Unit definition not found: {self.path_for(label)}")
        return UnitDefinition.from_plist(self._units[label])

    def put(self, unit: UnitDefinition) -> Path:
        self._units[unit.label] = unit.to_plist()
        return self.path_for(unit.label)

    def delete(self, label: str) -> None:
        self._units.pop(label, None)

    def list(self) -> List[str]:
        return sorted(lbl for lbl in self._units if is_managed_label(lbl, self.settings))
