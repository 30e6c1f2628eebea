#!/usr/bin/env python3
"""Read-only state probes for launch agents and VMs.

The supervisor and the VM runtime are queried independently and their
answers are never merged here; ``tartly.status`` reconciles them.
"""

from typing import Optional

from tartly.config import Settings
from tartly.errors import ExternalToolError
from tartly.interfaces.runtime import VMEntry, VMRuntimeClient
from tartly.interfaces.store import UnitStore
from tartly.interfaces.supervisor import SupervisorClient
from tartly.logging import get_logger
from tartly.naming import label

log = get_logger(__name__)


class StateProbes:
    """Side-effect-free state queries.

    A backing command that fails is reported as "not running" or
    "not found" rather than raised.
    """

    def __init__(
        self,
        settings: Settings,
        store: UnitStore,
        supervisor: SupervisorClient,
        runtime: VMRuntimeClient,
    ):
        self.settings = settings
        self.store = store
        self.supervisor = supervisor
        self.runtime = runtime

    def installed(self, vm_name: str) -> bool:
        try:
            return self.store.exists(label(vm_name, self.settings))
        except OSError as e:
            log.warning("probe_failed", probe="installed", vm_name=vm_name, error=str(e))
            return False

    def agent_pid(self, agent_label: str) -> Optional[int]:
        try:
            agents = self.supervisor.list_agents()
        except (ExternalToolError, OSError) as e:
            log.warning("probe_failed", probe="agent_running", label=agent_label, error=str(e))
            return None
        return agents.get(agent_label)

    def agent_running(self, agent_label: str) -> bool:
        return self.agent_pid(agent_label) is not None

    def _find_vm(self, vm_name: str) -> Optional[VMEntry]:
        try:
            entries = self.runtime.list_vms()
        except (ExternalToolError, OSError) as e:
            log.warning("probe_failed", probe="vm_state", vm_name=vm_name, error=str(e))
            return None
        for entry in entries:
            if entry.name == vm_name:
                return entry
        return None

    def vm_exists(self, vm_name: str) -> bool:
        return self._find_vm(vm_name) is not None

    def vm_running(self, vm_name: str) -> bool:
        entry = self._find_vm(vm_name)
        return entry is not None and entry.running
