"""tart VM runtime backend."""

import json
from typing import List

from ..config import Settings
from ..errors import ExternalToolError
from ..interfaces.process import ProcessRunner
from ..interfaces.runtime import VMEntry, VMRuntimeClient


def parse_tart_list(output: str) -> List[VMEntry]:
    """Parse ``tart list --format json`` output."""
    try:
        data = json.loads(output or "[]")
    except json.JSONDecodeError as e:
        raise ExternalToolError(f"Unexpected output from tart list: {e}")
    if not isinstance(data, list):
        raise ExternalToolError("Unexpected output from tart list: expected a JSON array")

    entries = []
    for item in data:
        if not isinstance(item, dict) or not item.get("Name"):
            continue
        entries.append(
            VMEntry(
                name=str(item["Name"]),
                state=str(item.get("State", "")),
                source=str(item.get("Source", "local")),
            )
        )
    return entries


class TartRuntime(VMRuntimeClient):
    """Query and stop VMs through the tart CLI."""

    name = "tart"

    def __init__(self, runner: ProcessRunner, settings: Settings):
        self.runner = runner
        self.settings = settings

    def list_vms(self) -> List[VMEntry]:
        result = self.runner.run(
            [self.settings.tart_binary, "list", "--format", "json"],
            timeout=self.settings.command_timeout,
            check=True,
        )
        return parse_tart_list(result.stdout)

    def stop(self, vm_name: str) -> None:
        self.runner.run(
            [self.settings.tart_binary, "stop", vm_name],
            timeout=self.settings.command_timeout,
            check=True,
        )
