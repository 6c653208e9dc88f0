"""Service registry for process-wide collaborators."""

from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar, cast

T = TypeVar("T")
ServiceFactory = Callable[[], T]


class ServiceRegistry:
    """Registry for all shared services with support for singletons and factories.

    Services are keyed by type name, so a Protocol can be registered with any
    implementation as its provider.
    """

    def __init__(self):
        """Initialize an empty service registry."""
        self._singletons: dict[str, Any] = {}
        self._factories: dict[str, ServiceFactory[Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Register a singleton instance by its type.

        Args:
            service_type: The type of the service to register
            instance: The singleton instance to register
        """
        self._factories.pop(service_type.__name__, None)
        self._singletons[service_type.__name__] = instance

    def register_factory(self, service_type: type[T], factory: ServiceFactory[T]) -> None:
        """Register a factory function by its type.

        Args:
            service_type: The type of the service to register
            factory: The factory function called on every lookup
        """
        self._singletons.pop(service_type.__name__, None)
        self._factories[service_type.__name__] = factory

    def unregister(self, service_type: type[T]) -> None:
        """Remove a service if it is registered."""
        self._singletons.pop(service_type.__name__, None)
        self._factories.pop(service_type.__name__, None)

    def is_registered(self, service_type: type[T]) -> bool:
        return service_type.__name__ in self._singletons or service_type.__name__ in self._factories

    def get(self, service_type: type[T]) -> T:
        """Get a service instance by type.

        Args:
            service_type: The type of the service to retrieve

        Returns:
            An instance of the requested service

        Raises:
            KeyError: If the requested service is not registered
        """
        service_name = service_type.__name__

        if service_name in self._factories:
            return self._factories[service_name]()
        if service_name in self._singletons:
            return cast(T, self._singletons[service_name])

        raise KeyError(f"Service {service_name} not registered")

    def get_optional(self, service_type: type[T]) -> T | None:
        """Get a service instance by type, or None when it is not registered."""
        if not self.is_registered(service_type):
            return None
        return self.get(service_type)


@lru_cache
def get_service_registry() -> ServiceRegistry:
    """Get the singleton service registry instance.

    Returns:
        The global service registry instance
    """
    return ServiceRegistry()
