"""IoC container for dependency injection in tartly."""

import inspect
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from tartly.config import Settings

T = TypeVar("T")


@dataclass
class ServiceRegistration:
    """Registration info for a service."""

    factory: Callable[..., Any]
    singleton: bool = True
    instance: Optional[Any] = None


class DependencyContainer:
    """
    IoC container for dependency injection.

    Usage:
        container = DependencyContainer()
        container.register(Settings, instance=settings)
        container.register(SupervisorClient, LaunchdSupervisor)

        supervisor = container.resolve(SupervisorClient)
    """

    def __init__(self):
        self._registrations: Dict[Type, ServiceRegistration] = {}
        self._lock = threading.RLock()

    def register(
        self,
        interface: Type[T],
        implementation: Type[T] = None,
        factory: Callable[..., T] = None,
        singleton: bool = True,
        instance: T = None,
    ) -> "DependencyContainer":
        """
        Register a service.

        Args:
            interface: The interface/base class
            implementation: Concrete implementation class
            factory: Factory function to create instance
            singleton: If True, reuse same instance
            instance: Pre-created instance to use
        """
        if instance is not None:
            self._registrations[interface] = ServiceRegistration(
                factory=lambda: instance,
                singleton=True,
                instance=instance,
            )
        elif factory is not None:
            self._registrations[interface] = ServiceRegistration(factory=factory, singleton=singleton)
        elif implementation is not None:
            self._registrations[interface] = ServiceRegistration(
                factory=implementation, singleton=singleton
            )
        else:
            raise ValueError("Must provide implementation, factory, or instance")

        return self

    def resolve(self, interface: Type[T]) -> T:
        """Resolve a service instance."""
        with self._lock:
            if interface not in self._registrations:
                raise KeyError(f"No registration for {interface}")

            reg = self._registrations[interface]
            if reg.singleton and reg.instance is not None:
                return reg.instance

            instance = self._create_instance(reg.factory)
            if reg.singleton:
                reg.instance = instance
            return instance

    def _create_instance(self, factory: Callable) -> Any:
        """Create instance, resolving annotated constructor dependencies."""
        try:
            sig = inspect.signature(factory)
        except ValueError:
            return factory()

        kwargs = {}
        for name, param in sig.parameters.items():
            if param.annotation is inspect.Parameter.empty:
                continue
            if self.has(param.annotation):
                kwargs[name] = self.resolve(param.annotation)
            elif param.default is inspect.Parameter.empty:
                raise KeyError(f"Cannot resolve parameter '{name}' of {factory}")

        return factory(**kwargs)

    def has(self, interface: Any) -> bool:
        """Check if service is registered."""
        try:
            return interface in self._registrations
        except TypeError:
            return False

    def reset(self) -> None:
        """Reset all singleton instances."""
        with self._lock:
            for reg in self._registrations.values():
                reg.instance = None


_container: Optional[DependencyContainer] = None


def get_container() -> DependencyContainer:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = create_default_container()
    return _container


def set_container(container: Optional[DependencyContainer]) -> None:
    """Set the global container (useful for testing)."""
    global _container
    _container = container


def create_default_container(settings: Optional[Settings] = None) -> DependencyContainer:
    """Create container with the launchd + tart registrations."""
    from .backends.launchd import LaunchdSupervisor
    from .backends.subprocess_runner import SubprocessRunner
    from .backends.tart import TartRuntime
    from .backends.unit_store import DirectoryUnitStore
    from .interfaces.process import ProcessRunner
    from .interfaces.runtime import VMRuntimeClient
    from .interfaces.store import UnitStore
    from .interfaces.supervisor import SupervisorClient

    container = DependencyContainer()

    container.register(Settings, instance=settings if settings is not None else Settings())
    container.register(ProcessRunner, SubprocessRunner)
    container.register(SupervisorClient, LaunchdSupervisor)
    container.register(VMRuntimeClient, TartRuntime)
    container.register(UnitStore, DirectoryUnitStore)

    return container
