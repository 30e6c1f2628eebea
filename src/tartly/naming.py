"""
Canonical name and path helpers for tartly launch agents.

Every module that needs a label, a plist path, log paths or a lock path for
a VM should import from here instead of computing them inline. All helpers
are pure functions of the VM name and the settings.
"""

import re
from pathlib import Path
from typing import Optional, Tuple

from tartly.config import Settings

_UNSAFE_CHARS = re.compile(r"[:/]")


def _settings(settings: Optional[Settings]) -> Settings:
    return settings if settings is not None else Settings()


def sanitize(vm_name: str) -> str:
    """Replace ':' and '/' with '-' and lowercase.

    Not injective: ``Demo:1.0`` and ``demo-1.0`` map to the same identifier.
    """
    return _UNSAFE_CHARS.sub("-", vm_name).lower()


def label(vm_name: str, settings: Optional[Settings] = None) -> str:
    """launchd label for *vm_name*."""
    return f"{_settings(settings).label_base}.{sanitize(vm_name)}"


def unit_path(vm_name: str, settings: Optional[Settings] = None) -> Path:
    """Path of the launch agent plist for *vm_name*."""
    s = _settings(settings)
    return s.unit_dir / f"{label(vm_name, s)}.plist"


def log_paths(vm_name: str, settings: Optional[Settings] = None) -> Tuple[Path, Path]:
    """(stdout, stderr) log paths for *vm_name*."""
    s = _settings(settings)
    stem = f"{s.log_prefix}-{sanitize(vm_name)}"
    return s.logs_dir / f"{stem}.log", s.logs_dir / f"{stem}.err.log"


def lock_path(vm_name: str, settings: Optional[Settings] = None) -> Path:
    """Advisory lock file guarding lifecycle operations on *vm_name*."""
    return _settings(settings).lock_dir / f"{sanitize(vm_name)}.lock"


def is_managed_label(value: str, settings: Optional[Settings] = None) -> bool:
    prefix = _settings(settings).label_base + "."
    return value.startswith(prefix) and len(value) > len(prefix)


def name_from_label(value: str, settings: Optional[Settings] = None) -> str:
    """Best-effort VM name for a label.

    Only a fallback: case and separators lost by ``sanitize`` cannot be
    recovered, so the name embedded in the plist always wins.
    """
    prefix = _settings(settings).label_base + "."
    if value.startswith(prefix):
        return value[len(prefix):]
    return value
