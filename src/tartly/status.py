#!/usr/bin/env python3
"""Status report combining launch agent and VM state."""

from dataclasses import dataclass
from enum import Enum
from typing import List

from tartly.config import Settings
from tartly.errors import UnitIOError
from tartly.interfaces.store import UnitStore
from tartly.logging import get_logger
from tartly.naming import name_from_label
from tartly.probes import StateProbes

log = get_logger(__name__)


class AgentStatus(Enum):
    """Launch agent run state."""

    RUNNING = "Running"
    STOPPED = "Stopped"


class VMStatus(Enum):
    """VM run state according to the runtime."""

    RUNNING = "Running"
    STOPPED = "Stopped"
    NOT_FOUND = "Not found"


@dataclass
class StatusRow:
    """One row of the status report."""

    vm_name: str
    label: str
    agent: AgentStatus
    vm: VMStatus
    name_recovered: bool = True

    @property
    def consistent(self) -> bool:
        """True when both sources agree on whether the VM is up."""
        return (self.agent is AgentStatus.RUNNING) == (self.vm is VMStatus.RUNNING)


def reconcile(
    vm_name: str,
    label: str,
    agent_running: bool,
    vm_exists: bool,
    vm_running: bool,
    name_recovered: bool = True,
) -> StatusRow:
    """Build a status row from independent probe results.

    The two columns are not forced to agree: an agent can be running while
    the VM is still booting, and a VM can run without any agent.
    """
    agent = AgentStatus.RUNNING if agent_running else AgentStatus.STOPPED
    if not vm_exists:
        vm = VMStatus.NOT_FOUND
    elif vm_running:
        vm = VMStatus.RUNNING
    else:
        vm = VMStatus.STOPPED
    return StatusRow(
        vm_name=vm_name, label=label, agent=agent, vm=vm, name_recovered=name_recovered
    )


def collect_status(store: UnitStore, probes: StateProbes, settings: Settings) -> List[StatusRow]:
    """One row per installed unit definition, sorted by label."""
    rows = []
    for unit_label in store.list():
        try:
            vm_name = store.get(unit_label).vm_name
            recovered = True
        except UnitIOError as e:
            vm_name = name_from_label(unit_label, settings)
            recovered = False
            log.warning("unit_unreadable", label=unit_label, fallback_name=vm_name, error=str(e))

        rows.append(
            reconcile(
                vm_name=vm_name,
                label=unit_label,
                agent_running=probes.agent_running(unit_label),
                vm_exists=probes.vm_exists(vm_name),
                vm_running=probes.vm_running(vm_name),
                name_recovered=recovered,
            )
        )
    return rows
