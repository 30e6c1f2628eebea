#!/usr/bin/env python3
"""
Lifecycle operations for tart VMs run as launch agents.

``LifecycleManager`` ties the unit store, the supervisor and the VM runtime
together. Every mutating operation holds the per-VM lock for its whole
duration and re-checks state after acquiring it.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from tartly.config import Settings
from tartly.errors import (
    Conflict,
    EmptyNameError,
    ExternalToolError,
    StateConflictError,
    UnitIOError,
)
from tartly.interfaces.runtime import VMRuntimeClient
from tartly.interfaces.store import UnitStore
from tartly.interfaces.supervisor import SupervisorClient
from tartly.locking import unit_lock
from tartly.logging import get_logger, log_operation
from tartly.naming import label, log_paths
from tartly.probes import StateProbes
from tartly.rollback import RollbackContext
from tartly.status import StatusRow, collect_status
from tartly.units import build_unit
from tartly.waiting import poll_until

log = get_logger(__name__)

ConfirmFn = Callable[[str], Optional[bool]]


class InstallOutcome(Enum):
    INSTALLED = "installed"
    REINSTALLED = "reinstalled"
    CANCELLED = "cancelled"


class StartOutcome(Enum):
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


class StopOutcome(Enum):
    """Which mechanism brought the VM down."""

    SUPERVISOR = "supervisor"
    RUNTIME = "runtime"


@dataclass
class UninstallResult:
    removed_logs: List[Path] = field(default_factory=list)
    kept_logs: List[Path] = field(default_factory=list)


def _no_answer(question: str) -> Optional[bool]:
    return None


class LifecycleManager:
    """Install, start, stop, uninstall and list tartly-managed VMs."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[UnitStore] = None,
        supervisor: Optional[SupervisorClient] = None,
        runtime: Optional[VMRuntimeClient] = None,
        confirm: Optional[ConfirmFn] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if store is None or supervisor is None or runtime is None or settings is None:
            from tartly.di import create_default_container, get_container

            container = (
                create_default_container(settings) if settings is not None else get_container()
            )
            settings = settings if settings is not None else container.resolve(Settings)
            store = store if store is not None else container.resolve(UnitStore)
            supervisor = supervisor if supervisor is not None else container.resolve(SupervisorClient)
            runtime = runtime if runtime is not None else container.resolve(VMRuntimeClient)

        self.settings = settings
        self.store = store
        self.supervisor = supervisor
        self.runtime = runtime
        self.confirm = confirm or _no_answer
        self.clock = clock
        self.sleep = sleep
        self.probes = StateProbes(settings, store, supervisor, runtime)

    @staticmethod
    def _require_name(vm_name: Optional[str]) -> str:
        if not vm_name or not vm_name.strip():
            raise EmptyNameError()
        return vm_name

    def _lock(self, vm_name: str):
        return unit_lock(vm_name, self.settings, clock=self.clock, sleep=self.sleep)

    def _wait(self, predicate: Callable[[], bool], timeout: float) -> bool:
        return poll_until(
            predicate,
            timeout=timeout,
            interval=self.settings.poll_interval,
            clock=self.clock,
            sleep=self.sleep,
        )

    def _ensure_dir(self, path: Path) -> None:
        if path.is_dir():
            return
        log.info("creating_directory", path=str(path))
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise UnitIOError(f"Failed to create directory {path}: {e}") from e

    def _require_installed(self, vm_name: str) -> None:
        if not self.probes.installed(vm_name):
            raise StateConflictError(Conflict.NOT_INSTALLED, f"VM '{vm_name}' is not installed.")

    def _embedded_name(self, unit_label: str) -> Optional[str]:
        try:
            return self.store.get(unit_label).vm_name
        except UnitIOError as e:
            log.warning("unit_unreadable", label=unit_label, error=str(e))
            return None

    def install(self, vm_name: str, force: bool = False) -> InstallOutcome:
        """Write and register the launch agent for *vm_name*.

        An existing agent with the same label is replaced only when *force*
        is set or the operator confirms. Log files survive a reinstall.
        """
        vm_name = self._require_name(vm_name)
        unit_label = label(vm_name, self.settings)

        with self._lock(vm_name), log_operation(log, "install", vm_name=vm_name) as oplog:
            log.info("installing_vm", vm_name=vm_name)
            outcome = InstallOutcome.INSTALLED

            if self.store.exists(unit_label):
                existing_name = self._embedded_name(unit_label)
                if existing_name is not None and existing_name != vm_name:
                    log.warning(
                        "label_collision",
                        vm_name=vm_name,
                        existing_vm_name=existing_name,
                        label=unit_label,
                    )

                if not force:
                    answer = self.confirm(f"Agent for VM '{vm_name}' already exists. Overwrite?")
                    if answer is None:
                        raise StateConflictError(
                            Conflict.ALREADY_INSTALLED,
                            f"Agent for VM '{vm_name}' already exists. Use --force to overwrite.",
                        )
                    if not answer:
                        log.info("install_cancelled", vm_name=vm_name)
                        return InstallOutcome.CANCELLED

                log.info("removing_existing_installation", label=unit_label)
                self._uninstall(existing_name or vm_name, unit_label, keep_logs=True)
                outcome = InstallOutcome.REINSTALLED

            self._ensure_dir(self.settings.cache_dir)
            self._ensure_dir(self.settings.unit_dir)
            self._ensure_dir(self.settings.logs_dir)

            unit = build_unit(vm_name, self.settings)
            with RollbackContext(f"install {vm_name}") as ctx:
                path = self.store.put(unit)
                ctx.add_action(
                    f"remove unit definition {path}", lambda: self.store.delete(unit_label)
                )
                self.supervisor.register(path)
                ctx.commit()

            oplog.info("vm_installed", vm_name=vm_name, plist=str(path), outcome=outcome.value)
            return outcome

    def start(self, vm_name: str) -> StartOutcome:
        """Start an installed, stopped VM through its launch agent."""
        vm_name = self._require_name(vm_name)
        unit_label = label(vm_name, self.settings)

        with self._lock(vm_name), log_operation(log, "start", vm_name=vm_name) as oplog:
            log.info("starting_vm", vm_name=vm_name)
            self._require_installed(vm_name)
            if self.probes.vm_running(vm_name):
                raise StateConflictError(
                    Conflict.ALREADY_RUNNING, f"VM '{vm_name}' is already running"
                )

            self._ensure_dir(self.settings.cache_dir)
            self.supervisor.start(unit_label)

            if self._wait(lambda: self.probes.vm_running(vm_name), self.settings.start_timeout):
                oplog.info("vm_started", vm_name=vm_name)
                return StartOutcome.CONFIRMED

            oplog.warning(
                "vm_start_unconfirmed", vm_name=vm_name, timeout=self.settings.start_timeout
            )
            return StartOutcome.UNCONFIRMED

    def stop(self, vm_name: str) -> StopOutcome:
        """Stop a running VM, falling back to the runtime if launchd can't."""
        vm_name = self._require_name(vm_name)
        unit_label = label(vm_name, self.settings)

        with self._lock(vm_name), log_operation(log, "stop", vm_name=vm_name):
            self._require_installed(vm_name)
            if not self.probes.vm_running(vm_name):
                raise StateConflictError(Conflict.NOT_RUNNING, f"VM '{vm_name}' is not running.")
            return self._stop(vm_name, unit_label)

    def _stop(self, vm_name: str, unit_label: str) -> StopOutcome:
        log.info("stopping_vm", vm_name=vm_name)
        try:
            self.supervisor.stop(unit_label)
        except ExternalToolError as e:
            log.warning("supervisor_stop_failed", label=unit_label, error=str(e))

        def stopped() -> bool:
            return not self.probes.vm_running(vm_name)

        if self._wait(stopped, self.settings.stop_timeout):
            log.info("vm_stopped", vm_name=vm_name, via=StopOutcome.SUPERVISOR.value)
            return StopOutcome.SUPERVISOR

        log.info("vm_still_running", vm_name=vm_name, fallback=self.runtime.name)
        self.runtime.stop(vm_name)
        if not self._wait(stopped, self.settings.final_stop_timeout):
            log.warning(
                "vm_stop_unconfirmed", vm_name=vm_name, timeout=self.settings.final_stop_timeout
            )
        log.info("vm_stopped", vm_name=vm_name, via=StopOutcome.RUNTIME.value)
        return StopOutcome.RUNTIME

    def uninstall(self, vm_name: str, cleanup_logs: bool = False) -> UninstallResult:
        """Stop the VM if needed, deregister the agent and remove its plist.

        Log files are removed when *cleanup_logs* is set or the operator
        confirms; otherwise they are kept and reported.
        """
        vm_name = self._require_name(vm_name)
        unit_label = label(vm_name, self.settings)

        with self._lock(vm_name) as held, log_operation(log, "uninstall", vm_name=vm_name):
            self._require_installed(vm_name)
            target = self._embedded_name(unit_label) or vm_name
            result = self._uninstall(target, unit_label, cleanup_logs=cleanup_logs)
            held.discard()
            return result

    def _uninstall(
        self,
        vm_name: str,
        unit_label: str,
        cleanup_logs: bool = False,
        keep_logs: bool = False,
    ) -> UninstallResult:
        log.info("uninstalling_vm", vm_name=vm_name)
        if self.probes.vm_running(vm_name):
            log.info("stopping_vm_before_uninstall", vm_name=vm_name)
            self._stop(vm_name, unit_label)
            if self.probes.vm_running(vm_name):
                raise ExternalToolError(
                    f"VM '{vm_name}' is still running; launch agent left installed."
                )

        path = self.store.path_for(unit_label)
        try:
            self.supervisor.deregister(path)
        except ExternalToolError as e:
            log.warning("supervisor_deregister_failed", label=unit_label, error=str(e))
        self.store.delete(unit_label)
        log.info("unit_removed", path=str(path))

        result = UninstallResult()
        existing_logs = [p for p in log_paths(vm_name, self.settings) if p.exists()]
        if not existing_logs:
            log.info("no_log_files", vm_name=vm_name)
        elif not keep_logs and (
            cleanup_logs or self.confirm(f"Remove log files for VM '{vm_name}'?")
        ):
            for log_file in existing_logs:
                try:
                    log_file.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise UnitIOError(f"Failed to remove log file {log_file}: {e}") from e
                result.removed_logs.append(log_file)
                log.info("log_file_removed", path=str(log_file))
        else:
            result.kept_logs.extend(existing_logs)
            log.info("log_files_preserved", paths=[str(p) for p in existing_logs])

        log.info("vm_uninstalled", vm_name=vm_name)
        return result

    def status(self) -> List[StatusRow]:
        """One row per installed unit definition."""
        with log_operation(log, "list"):
            return collect_status(self.store, self.probes, self.settings)
