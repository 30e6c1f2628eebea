"""Subprocess process runner implementation."""

import subprocess
from typing import List, Optional

from ..errors import ExternalToolError
from ..interfaces.process import ProcessResult, ProcessRunner
from ..logging import get_logger

log = get_logger(__name__)


class SubprocessRunner(ProcessRunner):
    """Run processes using the subprocess module."""

    def run(
        self,
        command: List[str],
        timeout: Optional[float] = None,
        check: bool = False,
    ) -> ProcessResult:
        """Run a command."""
        log.debug("run_command", command=command)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                timeout=timeout,
                check=False,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(f"Command not found: {command[0]}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"Command timed out after {timeout}s: {' '.join(command)}", command=command
            ) from e
        except OSError as e:
            raise ExternalToolError(f"Failed to execute {command[0]}: {e}", command=command) from e

        process_result = ProcessResult(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
        if check and not process_result.success:
            raise ExternalToolError(
                f"Command failed with exit code {result.returncode}: {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                stderr=process_result.stderr,
            )
        return process_result
