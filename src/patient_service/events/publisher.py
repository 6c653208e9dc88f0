"""Event publisher used by the patient lifecycle."""

from typing import Protocol

from loguru import logger
from pydantic import BaseModel

from patient_service.event_bus import EventBus


class EventPublisher(Protocol):
    """Topic-based, fire-and-forget event publication."""

    def publish(self, topic: str, event: BaseModel) -> None: ...


class EventBusPublisher:
    """Publishes onto the in-process EventBus.

    Subscriber failures are reported by the bus and logged here; they are the
    consumer's concern and never raised back to the publisher.
    """

    def __init__(self, bus: EventBus):
        self._bus = bus

    def publish(self, topic: str, event: BaseModel) -> None:
        results = self._bus.emit_sync(topic, event)
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            logger.warning(f"Publisher: {len(failures)} subscriber(s) of '{topic}' failed for {type(event).__name__}: {failures}")
        logger.debug(f"Publisher: published {type(event).__name__} to '{topic}' ({len(results)} subscribers)")
