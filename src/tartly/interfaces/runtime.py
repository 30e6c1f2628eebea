"""Interface for the VM runtime (tart)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass
class VMEntry:
    """One VM as reported by the runtime catalog."""

    name: str
    state: str
    source: str = "local"

    @property
    def running(self) -> bool:
        return self.state.strip().lower() == "running"


class VMRuntimeClient(ABC):
    """Abstract interface for VM runtime operations."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'tart')."""
        pass

    @abstractmethod
    def list_vms(self) -> List[VMEntry]:
        """List all VMs known to the runtime."""
        pass

    @abstractmethod
    def stop(self, vm_name: str) -> None:
        """Stop a VM directly, bypassing the supervisor."""
        pass
