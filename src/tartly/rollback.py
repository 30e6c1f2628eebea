"""
Transactional rollback support for tartly operations.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List

from tartly.logging import get_logger

log = get_logger(__name__)


@dataclass
class RollbackAction:
    """A single rollback action."""

    description: str
    action: Callable[[], None]
    critical: bool = False  # If True, failure stops the rollback chain


@dataclass
class RollbackContext:
    """
    Context manager for transactional operations with automatic rollback.

    Usage:
        with RollbackContext("install demo") as ctx:
            store.put(unit)
            ctx.add_action("remove unit", lambda: store.delete(unit.label))
            supervisor.register(path)  # raises -> unit is removed again
            ctx.commit()
    """

    operation_name: str
    _files: List[Path] = field(default_factory=list)
    _actions: List[RollbackAction] = field(default_factory=list)
    _committed: bool = False

    def add_file(self, path: Path) -> Path:
        """Register a file for deletion on rollback."""
        self._files.append(path)
        log.debug("rollback_registered_file", path=str(path))
        return path

    def add_action(
        self, description: str, action: Callable[[], None], critical: bool = False
    ) -> None:
        """Register a custom rollback action."""
        self._actions.append(
            RollbackAction(description=description, action=action, critical=critical)
        )
        log.debug("rollback_registered_action", description=description)

    @property
    def committed(self) -> bool:
        return self._committed

    def commit(self) -> None:
        """Mark operation as successful, preventing rollback."""
        self._committed = True

    def rollback(self) -> List[str]:
        """Execute rollback actions. Returns list of errors."""
        errors = []
        log.warning("rollback_started", operation=self.operation_name)

        for action in reversed(self._actions):
            try:
                log.info("rollback_action", description=action.description)
                action.action()
            except Exception as e:
                error_msg = f"Rollback action '{action.description}' failed: {e}"
                errors.append(error_msg)
                log.error("rollback_action_failed", description=action.description, error=str(e))
                if action.critical:
                    break

        for path in reversed(self._files):
            try:
                if path.exists():
                    path.unlink()
                    log.info("rollback_deleted_file", path=str(path))
            except OSError as e:
                errors.append(f"Failed to delete {path}: {e}")

        return errors

    def __enter__(self) -> "RollbackContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None and not self._committed:
            self.rollback()
        return False  # Don't suppress the exception
