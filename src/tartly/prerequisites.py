"""Host checks run before every tartly command except ``help``."""

import os
import shutil
import sys
from pathlib import Path
from typing import Optional

from tartly.config import Settings
from tartly.errors import PrerequisiteError
from tartly.logging import get_logger

log = get_logger(__name__)


def resolve_tart_binary(settings: Settings) -> Optional[str]:
    """Configured tart path if it is executable, else ``tart`` from PATH."""
    configured = Path(settings.tart_binary).expanduser()
    if configured.is_file() and os.access(configured, os.X_OK):
        return str(configured)
    return shutil.which(settings.tart_binary) or shutil.which("tart")


def _ensure_writable_dir(path: Path, what: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PrerequisiteError(f"Cannot create or write to {what} directory: {path}.") from e
    if not os.access(path, os.W_OK):
        raise PrerequisiteError(f"Cannot create or write to {what} directory: {path}.")


def check_prerequisites(settings: Settings, platform: Optional[str] = None) -> Settings:
    """Validate the host and return settings with the tart path resolved.

    Raises:
        PrerequisiteError: not macOS, tart or launchctl missing, or an
            unusable LaunchAgents or Logs directory
    """
    platform = sys.platform if platform is None else platform
    if platform != "darwin":
        raise PrerequisiteError("This tool can only run on macOS.")

    tart = resolve_tart_binary(settings)
    if tart is None:
        raise PrerequisiteError(
            "tart is not installed. Please install tart with: brew install cirruslabs/cli/tart."
        )

    if shutil.which(settings.launchctl_binary) is None:
        raise PrerequisiteError("launchctl is not available. This should never happen on macOS.")

    _ensure_writable_dir(settings.unit_dir, "LaunchAgents")
    _ensure_writable_dir(settings.logs_dir, "Logs")

    if tart != settings.tart_binary:
        log.debug("tart_binary_resolved", configured=settings.tart_binary, resolved=tart)
        settings = settings.model_copy(update={"tart_binary": tart})
    return settings
