"""
Pytest fixtures and configuration for tartly tests.
"""
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from tartly.backends.unit_store import InMemoryUnitStore
from tartly.config import Settings
from tartly.errors import ExternalToolError
from tartly.interfaces.runtime import VMEntry, VMRuntimeClient
from tartly.interfaces.supervisor import SupervisorClient
from tartly.lifecycle import LifecycleManager


class FakeClock:
    """Monotonic clock that only advances when something sleeps."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRuntime(VMRuntimeClient):
    """In-memory tart catalog with optionally delayed state changes."""

    name = "fake-tart"

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.vms: Dict[str, str] = {}
        self.pending: List[Tuple[float, str, str]] = []
        self.stop_calls: List[str] = []
        self.fail_list = False
        self.fail_stop = False
        self.stop_is_effective = True

    def set_state(self, vm_name: str, state: str, delay: float = 0.0) -> None:
        if delay <= 0:
            self.vms[vm_name] = state
        else:
            self.pending.append((self.clock.now + delay, vm_name, state))

    def _apply_pending(self) -> None:
        due = [p for p in self.pending if p[0] <= self.clock.now]
        self.pending = [p for p in self.pending if p[0] > self.clock.now]
        for _, vm_name, state in sorted(due):
            self.vms[vm_name] = state

    def list_vms(self) -> List[VMEntry]:
        if self.fail_list:
            raise ExternalToolError("tart list failed", returncode=1)
        self._apply_pending()
        return [VMEntry(name=name, state=state) for name, state in self.vms.items()]

    def stop(self, vm_name: str) -> None:
        self.stop_calls.append(vm_name)
        if self.fail_stop:
            raise ExternalToolError(
                "tart stop failed", command=["tart", "stop", vm_name], returncode=1
            )
        if self.stop_is_effective and vm_name in self.vms:
            self.vms[vm_name] = "stopped"


class FakeSupervisor(SupervisorClient):
    """launchd stand-in that drives the fake runtime on start/stop.

    ``start_delay``/``stop_delay`` of None mean the call has no effect on
    the VM at all.
    """

    name = "fake-launchd"

    def __init__(self, runtime: FakeRuntime, store: InMemoryUnitStore):
        self.runtime = runtime
        self.store = store
        self.loaded: Dict[str, Optional[int]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail: set = set()
        self.start_delay: Optional[float] = 0.0
        self.stop_delay: Optional[float] = 0.0
        self._next_pid = 4242

    def _check(self, op: str, arg: str) -> None:
        self.calls.append((op, arg))
        if op in self.fail:
            raise ExternalToolError(f"launchctl {op} failed", returncode=5)

    def register(self, unit_path: Path) -> None:
        self._check("register", str(unit_path))
        self.loaded[unit_path.stem] = None

    def deregister(self, unit_path: Path) -> None:
        self._check("deregister", str(unit_path))
        self.loaded.pop(unit_path.stem, None)

    def start(self, label: str) -> None:
        self._check("start", label)
        self.loaded[label] = self._next_pid
        self._next_pid += 1
        if self.start_delay is not None:
            self.runtime.set_state(self.store.get(label).vm_name, "running", self.start_delay)

    def stop(self, label: str) -> None:
        self._check("stop", label)
        if self.stop_delay is not None:
            self.loaded[label] = None
            self.runtime.set_state(self.store.get(label).vm_name, "stopped", self.stop_delay)

    def list_agents(self) -> Dict[str, Optional[int]]:
        return dict(self.loaded)

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]


class FakeConfirm:
    """Records questions and replays canned answers (None when exhausted)."""

    def __init__(self, *answers: Optional[bool]):
        self.answers = list(answers)
        self.questions: List[str] = []

    def __call__(self, question: str) -> Optional[bool]:
        self.questions.append(question)
        return self.answers.pop(0) if self.answers else None


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every directory into a temporary tree."""
    return Settings(
        unit_dir=tmp_path / "LaunchAgents",
        logs_dir=tmp_path / "Logs",
        state_dir=tmp_path / "state",
        cache_dir=tmp_path / "state" / "cache",
        lock_dir=tmp_path / "state" / "locks",
        tart_binary="/opt/homebrew/bin/tart",
        lock_timeout=1.0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(settings):
    return InMemoryUnitStore(settings)


@pytest.fixture
def runtime(clock):
    return FakeRuntime(clock)


@pytest.fixture
def supervisor(runtime, store):
    return FakeSupervisor(runtime, store)


@pytest.fixture
def confirm():
    return FakeConfirm()


@pytest.fixture
def manager(settings, store, supervisor, runtime, confirm, clock):
    return LifecycleManager(
        settings=settings,
        store=store,
        supervisor=supervisor,
        runtime=runtime,
        confirm=confirm,
        clock=clock.monotonic,
        sleep=clock.sleep,
    )
