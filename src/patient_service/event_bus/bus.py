"""Event Bus Implementation.

This module provides the topic-based EventBus that patient lifecycle events are
published to. It stands in for an external pub/sub system: publishers emit a
Pydantic event onto a named topic and every handler subscribed to that topic
receives it.

## Key Features

- **Topic Subscriptions**: Handlers subscribe to a topic name, not an event class
- **Async Handler Execution**: All handlers of a topic execute concurrently
- **ServiceRegistry Integration**: Class handlers get their dependencies from the registry
- **Error Isolation**: Handler failures don't affect other handlers or the publisher
- **Singleton Pattern**: Global instance via @lru_cache

## Usage

```python
from patient_service.event_bus import get_event_bus

async def log_patient_event(event: PatientEvent) -> None:
    logger.info(event)

bus = get_event_bus()
bus.on("patient", log_patient_event)

# From synchronous code (request handlers, CLI)
results = bus.emit_sync("patient", PatientEvent(...))
```

"""

import asyncio
import concurrent.futures
import inspect
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import BaseModel

from .core import EventEmissionError, HandlerRegistrationError

T_Handler = Callable[..., Any]


class EventBus:
    """In-process topic bus for async event handling.

    Example:
        ```python
        bus = get_event_bus()
        bus.on("patient", PatientAnalyticsHandler)
        bus.emit_sync("patient", event)
        # Or, inside a coroutine:
        results = await bus.emit_and_wait("patient", event)
        ```
    """

    def __init__(self, isolate_events: bool = False) -> None:
        """Initialize a new EventBus instance.

        Args:
            isolate_events: If True, each handler receives a deep copy of the event.
                           Can be overridden per emit call. Default is False.
        """
        self._handlers: dict[str, list[T_Handler]] = {}
        self._isolate_events = isolate_events
        self._sync_executor: concurrent.futures.ThreadPoolExecutor | None = None
        logger.debug(f"EventBus initialized (isolate_events={isolate_events})")

    def on(self, topic: str, handler: T_Handler) -> None:
        """Subscribe a handler to a topic.

        Args:
            topic: Topic name to subscribe to
            handler: The handler function, handler instance or handler class

        Raises:
            HandlerRegistrationError: If topic is empty or handler is not callable
        """
        if not isinstance(topic, str) or not topic:
            raise HandlerRegistrationError(f"Topic must be a non-empty string, got: {topic!r}")

        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        self._handlers.setdefault(topic, []).append(handler)
        logger.debug(f"Registered handler for topic '{topic}': {handler}")

    def remove_handler(self, topic: str, handler: T_Handler) -> bool:
        """Remove a specific handler from a topic."""
        if topic in self._handlers:
            try:
                self._handlers[topic].remove(handler)
                logger.debug(f"Removed handler for topic '{topic}': {handler}")
                return True
            except ValueError:
                pass
        return False

    def clear_handlers(self, topic: str | None = None) -> None:
        """Clear handlers for a specific topic or all topics."""
        if topic is None:
            self._handlers.clear()
            logger.debug("Cleared all handlers")
        elif topic in self._handlers:
            del self._handlers[topic]
            logger.debug(f"Cleared handlers for topic '{topic}'")

    def get_handler_count(self, topic: str) -> int:
        """Get the number of handlers subscribed to a topic."""
        return len(self._handlers.get(topic, []))

    def get_handlers(self, topic: str) -> list[T_Handler]:
        """Get the handlers subscribed to a topic, in subscription order."""
        return list(self._handlers.get(topic, []))

    def get_topics(self) -> list[str]:
        """Get all topics that have subscribed handlers."""
        return list(self._handlers.keys())

    def emit_sync(self, topic: str, event: BaseModel, isolate: bool | None = None) -> list[Any]:
        """Emit an event synchronously and wait for all handlers to complete.

        Use this when calling from a synchronous context (request handlers
        running on a worker thread, CLI commands).

        Args:
            topic: Topic to emit onto
            event: The event instance to emit
            isolate: If True, each handler receives a deep copy of the event.

        Returns:
            List of results from all handlers (including exceptions)
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No running loop - we can use asyncio.run directly
            return asyncio.run(self.emit_and_wait(topic, event, isolate))

        # We're inside an async context - use thread pool to run the coroutine
        if self._sync_executor is None:
            self._sync_executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
            logger.debug("Created sync executor for EventBus")
        future = self._sync_executor.submit(asyncio.run, self.emit_and_wait(topic, event, isolate))
        return future.result()

    def shutdown(self) -> None:
        """Shutdown the EventBus and release the sync emission thread pool."""
        if self._sync_executor is not None:
            logger.debug("Shutting down EventBus sync executor")
            self._sync_executor.shutdown(wait=True)
            self._sync_executor = None
        logger.debug("EventBus shutdown complete")

    async def emit_and_wait(self, topic: str, event: BaseModel, isolate: bool | None = None) -> list[Any]:
        """Emit an event onto a topic and wait for all handlers to complete.

        Args:
            topic: Topic to emit onto
            event: The event instance to emit
            isolate: If True, each handler receives a deep copy of the event.
                    If None (default), uses the bus-level setting.

        Returns:
            List of results from all handlers (including exceptions)

        Raises:
            EventEmissionError: If event is not a BaseModel instance
        """
        if not isinstance(event, BaseModel):
            raise EventEmissionError(f"Event must be a BaseModel instance, got: {type(event).__name__}")

        handlers = list(self._handlers.get(topic, []))

        if not handlers:
            logger.debug(f"No handlers subscribed to topic '{topic}'")
            return []

        logger.debug(f"Emitting {type(event).__name__} on '{topic}' to {len(handlers)} handlers")

        should_isolate = isolate if isolate is not None else self._isolate_events

        tasks = []
        for handler in handlers:
            handler_event = event.model_copy(deep=True) if should_isolate else event
            tasks.append(self._execute_handler(handler, handler_event))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        successful = sum(1 for r in results if not isinstance(r, Exception))
        failed = len(results) - successful
        if failed > 0:
            logger.warning(f"Topic '{topic}' {type(event).__name__}: {successful} successful, {failed} failed handlers")
        logger.trace(f"Topic '{topic}' results: {results}")

        return results

    async def _execute_handler(self, handler: T_Handler, event: BaseModel) -> Any:
        """Execute a single handler with dependency injection.

        Args:
            handler: The handler to execute (function, instance or class)
            event: The event to pass to the handler

        Returns:
            The handler's result or any exception raised
        """
        try:
            if inspect.isclass(handler):
                handler_instance = self._instantiate_handler_class(handler)
                handler_method = getattr(handler_instance, "handle", None)
                if handler_method is None:
                    raise AttributeError(f"Handler class {handler.__name__} must have a 'handle' method")
                return await _maybe_await(handler_method(event))

            parameters = list(inspect.signature(handler).parameters.values())

            if len(parameters) <= 1:
                return await _maybe_await(handler(event))

            # Inject further parameters from the ServiceRegistry by annotation
            kwargs = self._resolve_dependencies(parameters[1:], str(handler))
            return await _maybe_await(handler(event, **kwargs))

        except (ValueError, TypeError, RuntimeError, AttributeError, KeyError) as e:
            logger.error(f"Handler {handler} failed: {e}")
            return e

    def _instantiate_handler_class(self, handler_class: type) -> Any:
        """Instantiate a handler class, injecting constructor dependencies."""
        parameters = list(inspect.signature(handler_class.__init__).parameters.values())[1:]  # Skip 'self'
        if not parameters:
            return handler_class()
        return handler_class(**self._resolve_dependencies(parameters, handler_class.__name__))

    @staticmethod
    def _resolve_dependencies(parameters: list[inspect.Parameter], owner: str) -> dict[str, Any]:
        from patient_service.services.registry import get_service_registry

        registry = get_service_registry()
        kwargs = {}
        for param in parameters:
            if param.annotation is inspect.Parameter.empty:
                continue
            try:
                kwargs[param.name] = registry.get(param.annotation)
                logger.trace(f"Injected service '{param.annotation.__name__}' for {owner}")
            except (KeyError, AttributeError):
                logger.trace(f"Service '{param.annotation}' not found in registry for {owner}")
        return kwargs


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


@lru_cache
def get_event_bus() -> EventBus:
    """Get or create the singleton EventBus instance.

    Returns:
        The EventBus instance
    """
    return EventBus()
