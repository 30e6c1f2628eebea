#!/usr/bin/env python3
"""Launch agent unit definitions for tartly VMs."""

import os
import plistlib
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.parsers.expat import ExpatError

from tartly.config import Settings
from tartly.errors import UnitFormatError, UnitIOError
from tartly.naming import label, log_paths

VM_NAME_KEY = "TartlyVMName"


@dataclass
class UnitDefinition:
    """One launch agent: runs ``tart run`` for a single VM."""

    label: str
    vm_name: str
    program_arguments: List[str] = field(default_factory=list)
    stdout_path: Optional[Path] = None
    stderr_path: Optional[Path] = None
    run_at_load: bool = True
    restart_on_success: bool = False

    def to_plist(self) -> Dict[str, Any]:
        """Convert to a launchd property list dictionary."""
        data: Dict[str, Any] = {
            "Label": self.label,
            "ProgramArguments": list(self.program_arguments),
            "RunAtLoad": self.run_at_load,
            # KeepAlive.SuccessfulExit=False: relaunch after a crash, not after a clean exit
            "KeepAlive": {"SuccessfulExit": self.restart_on_success},
        }
        if self.stdout_path is not None:
            data["StandardOutPath"] = str(self.stdout_path)
        if self.stderr_path is not None:
            data["StandardErrorPath"] = str(self.stderr_path)
        data[VM_NAME_KEY] = self.vm_name
        return data

    @classmethod
    def from_plist(cls, data: Any) -> "UnitDefinition":
        """Create from a property list dictionary."""
        if not isinstance(data, dict):
            raise UnitFormatError("Unit definition must be a dictionary")
        unit_label = data.get("Label")
        if not isinstance(unit_label, str) or not unit_label:
            raise UnitFormatError("Unit definition has no Label")
        vm_name = data.get(VM_NAME_KEY)
        if not isinstance(vm_name, str) or not vm_name:
            raise UnitFormatError(f"Unit definition '{unit_label}' has no {VM_NAME_KEY}")

        keep_alive = data.get("KeepAlive", {})
        restart_on_success = (
            bool(keep_alive.get("SuccessfulExit", False))
            if isinstance(keep_alive, dict)
            else bool(keep_alive)
        )
        stdout = data.get("StandardOutPath")
        stderr = data.get("StandardErrorPath")
        return cls(
            label=unit_label,
            vm_name=vm_name,
            program_arguments=[str(a) for a in data.get("ProgramArguments", [])],
            stdout_path=Path(stdout) if stdout else None,
            stderr_path=Path(stderr) if stderr else None,
            run_at_load=bool(data.get("RunAtLoad", False)),
            restart_on_success=restart_on_success,
        )


def build_unit(vm_name: str, settings: Optional[Settings] = None) -> UnitDefinition:
    """Build the launch agent definition for *vm_name*."""
    settings = settings if settings is not None else Settings()
    stdout_log, stderr_log = log_paths(vm_name, settings)
    return UnitDefinition(
        label=label(vm_name, settings),
        vm_name=vm_name,
        program_arguments=[
            settings.tart_binary,
            "run",
            "--no-graphics",
            f"--dir=cache:{settings.cache_dir}",
            vm_name,
        ],
        stdout_path=stdout_log,
        stderr_path=stderr_log,
        run_at_load=settings.run_at_load,
        restart_on_success=False,
    )


def write_unit(unit: UnitDefinition, path: Path) -> Path:
    """Write *unit* to *path* atomically.

    The parent directory must already exist. The plist is written to a
    temporary file next to *path* and moved into place, so readers never
    see a partial file.
    """
    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
            plistlib.dump(unit.to_plist(), tmp)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise UnitIOError(f"Failed to write unit definition {path}: {e}") from e
    return path


def read_unit(path: Path) -> UnitDefinition:
    """Read a unit definition from *path*."""
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except OSError as e:
        raise UnitIOError(f"Failed to read unit definition {path}: {e}") from e
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise UnitFormatError(f"Malformed unit definition {path}: {e}") from e
    return UnitDefinition.from_plist(data)


def generate(vm_name: str, path: Path, settings: Optional[Settings] = None) -> UnitDefinition:
    """Build the unit for *vm_name* and write it to *path*."""
    unit = build_unit(vm_name, settings)
    write_unit(unit, path)
    return unit
