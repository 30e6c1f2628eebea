"""
tartly - Run tart VMs as macOS launch agents.

Install, start, stop, list and uninstall per-VM launchd agents that run
``tart run --no-graphics`` in the background.
"""

__version__ = "0.2.0"

from tartly.config import Settings, load_settings
from tartly.lifecycle import LifecycleManager

__all__ = ["LifecycleManager", "Settings", "load_settings", "__version__"]
