"""Abstract interface for process execution."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class ProcessResult:
    """Result of process execution."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessRunner(ABC):
    """Abstract interface for process execution."""

    @abstractmethod
    def run(
        self,
        command: List[str],
        timeout: Optional[float] = None,
        check: bool = False,
    ) -> ProcessResult:
        """Run a command and capture its output.

        Raises ExternalToolError when the executable is missing or times
        out, and on a non-zero exit when *check* is set.
        """
        pass
