"""launchd supervisor backend driven through launchctl."""

import os
from pathlib import Path
from typing import Dict, List, Optional

from ..config import Settings
from ..errors import ExternalToolError
from ..interfaces.process import ProcessResult, ProcessRunner
from ..interfaces.supervisor import SupervisorClient


def parse_launchctl_list(output: str) -> Dict[str, Optional[int]]:
    """Parse ``launchctl list`` output into {label: pid-or-None}.

    Lines look like ``PID<TAB>Status<TAB>Label``; a PID of ``-`` means the
    job is loaded but not running.
    """
    agents: Dict[str, Optional[int]] = {}
    for line in output.splitlines():
        parts = line.split(None, 2)
        if len(parts) < 3 or parts[0] == "PID":
            continue
        pid_field, _status, job_label = parts
        agents[job_label.strip()] = int(pid_field) if pid_field.isdigit() else None
    return agents


class LaunchdSupervisor(SupervisorClient):
    """Per-user launchd domain (``gui/<uid>``)."""

    name = "launchd"

    def __init__(self, runner: ProcessRunner, settings: Settings):
        self.runner = runner
        self.settings = settings
        self.domain = f"gui/{os.getuid()}"

    def _launchctl(self, *args: str) -> ProcessResult:
        command: List[str] = [self.settings.launchctl_binary, *args]
        result = self.runner.run(command, timeout=self.settings.command_timeout)
        if not result.success:
            raise ExternalToolError(
                f"launchctl {args[0]} failed with exit code {result.returncode}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def register(self, unit_path: Path) -> None:
        self._launchctl("bootstrap", self.domain, str(unit_path))

    def deregister(self, unit_path: Path) -> None:
        self._launchctl("bootout", self.domain, str(unit_path))

    def start(self, label: str) -> None:
        self._launchctl("start", label)

    def stop(self, label: str) -> None:
        self._launchctl("stop", label)

    def list_agents(self) -> Dict[str, Optional[int]]:
        return parse_launchctl_list(self._launchctl("list").stdout)
