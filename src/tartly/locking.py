"""
Per-VM advisory locks.

Lifecycle operations on the same sanitized identifier are serialized
across processes with an exclusive ``flock`` on
``<lock_dir>/<identifier>.lock``.

A holder may discard the lock file on release (uninstall does). Waiters
that locked the unlinked file notice the inode changed and retry on the
fresh path.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TextIO

from tartly.config import Settings
from tartly.errors import Conflict, StateConflictError, UnitIOError
from tartly.logging import get_logger
from tartly.naming import lock_path
from tartly.waiting import poll_until

log = get_logger(__name__)


class HeldLock:
    """Handle for a held unit lock."""

    def __init__(self, path: Path, handle: TextIO):
        self.path = path
        self.handle = handle
        self.discarded = False

    def discard(self) -> None:
        """Remove the lock file when the lock is released."""
        self.discarded = True


def _open(path: Path) -> TextIO:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "a")
    except OSError as e:
        raise UnitIOError(f"Cannot create lock file {path}: {e}") from e


def _is_current(path: Path, handle: TextIO) -> bool:
    try:
        on_disk = os.stat(path)
    except FileNotFoundError:
        return False
    held = os.fstat(handle.fileno())
    return (on_disk.st_dev, on_disk.st_ino) == (held.st_dev, held.st_ino)


def _try_lock(path: Path) -> Optional[TextIO]:
    handle = _open(path)
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        handle.close()
        return None
    if not _is_current(path, handle):
        log.debug("lock_file_replaced", path=str(path))
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        handle.close()
        return None
    return handle


@contextmanager
def unit_lock(
    vm_name: str,
    settings: Settings,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    timeout: Optional[float] = None,
) -> Iterator[HeldLock]:
    """Hold the lock for *vm_name* for the duration of the block.

    Raises:
        StateConflictError(BUSY): another process held the lock past the timeout
        UnitIOError: the lock file could not be created
    """
    path = lock_path(vm_name, settings)
    timeout = settings.lock_timeout if timeout is None else timeout
    acquired = []

    def attempt() -> bool:
        handle = _try_lock(path)
        if handle is None:
            return False
        acquired.append(handle)
        return True

    if not poll_until(
        attempt,
        timeout=timeout,
        interval=min(settings.poll_interval, 0.2),
        clock=clock,
        sleep=sleep,
    ):
        raise StateConflictError(
            Conflict.BUSY,
            f"Another tartly operation is in progress for VM '{vm_name}' (lock: {path})",
        )

    held = HeldLock(path, acquired[0])
    log.debug("lock_acquired", vm_name=vm_name, path=str(path))
    try:
        yield held
    finally:
        try:
            if held.discarded:
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    log.warning("lock_file_not_removed", path=str(path), error=str(e))
                else:
                    log.debug("lock_file_removed", path=str(path))
            fcntl.flock(held.handle.fileno(), fcntl.LOCK_UN)
            log.debug("lock_released", vm_name=vm_name, path=str(path))
        finally:
            held.handle.close()
