"""Dependency injection container.

The container decides which NativeEngine connections talk to. By default
it lazily builds a ``CtypesSQLite`` from configuration; tests register
their own engine (for example one reporting a different threading mode).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Callable, TypeVar

T = TypeVar("T")

Factory = Callable[["Container"], Any]


class Container:
    """
    Registry of ports to implementations.

    An implementation is either a ready instance or a factory that is
    called once, on first resolve.
    """

    def __init__(self) -> None:
        self._factories: dict[type, Factory] = {}
        self._instances: dict[type, Any] = {}

    def register_singleton(self, interface: type[T], instance: T) -> None:
        """Bind ``interface`` to an existing instance."""
        self._factories.pop(interface, None)
        self._instances[interface] = instance

    def register_factory(self, interface: type[T], factory: Callable[[Container], T]) -> None:
        """Bind ``interface`` to a factory, dropping any instance built earlier."""
        self._factories[interface] = factory
        self._instances.pop(interface, None)

    def resolve(self, interface: type[T]) -> T:
        """
        Return the implementation bound to ``interface``.

        Raises:
            KeyError: If nothing is registered for the interface
        """
        if interface not in self._instances:
            factory = self._factories.get(interface)
            if factory is None:
                raise KeyError(f"No registration found for {interface}")
            self._instances[interface] = factory(self)
        return self._instances[interface]

    def has(self, interface: type) -> bool:
        """Check if an interface is registered."""
        return interface in self._instances or interface in self._factories

    @contextmanager
    def override(self, interface: type[T], instance: T) -> Iterator[T]:
        """Temporarily bind ``interface`` to ``instance``."""
        saved_instance = self._instances.get(interface)
        saved_factory = self._factories.get(interface)
        self.register_singleton(interface, instance)
        try:
            yield instance
        finally:
            self._instances.pop(interface, None)
            if saved_factory is not None:
                self._factories[interface] = saved_factory
            if saved_instance is not None:
                self._instances[interface] = saved_instance

    def clear(self) -> None:
        """Drop all registrations and instances."""
        self._factories.clear()
        self._instances.clear()


def _default_engine(container: Container) -> Any:
    from typed_sqlite.adapters.outbound.ctypes_sqlite import CtypesSQLite
    from typed_sqlite.infrastructure.config import get_config

    library_path = get_config().engine.library_path
    return CtypesSQLite(str(library_path) if library_path else None)


def register_defaults(container: Container) -> Container:
    """Register the default NativeEngine factory if none is registered."""
    from typed_sqlite.ports.outbound import NativeEngine

    if not container.has(NativeEngine):
        container.register_factory(NativeEngine, _default_engine)
    return container


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = register_defaults(Container())
    return _container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    if _container is not None:
        _container.clear()
    _container = None


def resolve_engine() -> Any:
    """Resolve the NativeEngine from the global container."""
    from typed_sqlite.ports.outbound import NativeEngine

    container = get_container()
    register_defaults(container)
    return container.resolve(NativeEngine)
