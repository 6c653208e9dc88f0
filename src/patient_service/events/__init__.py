"""Event system for the patient service.

This module provides the patient event type, the publisher the lifecycle
service publishes through, and the analytics consumer subscribed to it.
"""

from loguru import logger

from patient_service.event_bus import get_event_bus
from patient_service.events.analytics_handlers import PatientAnalyticsHandler
from patient_service.events.publisher import EventBusPublisher, EventPublisher
from patient_service.events.types import PatientEvent, PatientEventType

__all__ = [
    "EventBusPublisher",
    "EventPublisher",
    "PatientAnalyticsHandler",
    "PatientEvent",
    "PatientEventType",
    "register_event_handlers",
    "unregister_event_handlers",
]


def register_event_handlers(topic: str) -> None:
    """Subscribe the event consumers to the patient topic.

    Call after the ServiceRegistry is populated, since class handlers resolve
    their dependencies from it at emission time.

    Args:
        topic: Topic patient events are published to
    """
    logger.debug(f"Registering event handlers on topic '{topic}'")

    event_bus = get_event_bus()
    if PatientAnalyticsHandler in event_bus.get_handlers(topic):
        logger.debug("Event handlers already registered")
        return
    event_bus.on(topic, PatientAnalyticsHandler)

    logger.info("Event handlers registered successfully")


def unregister_event_handlers(topic: str) -> None:
    """Remove the consumers subscribed by ``register_event_handlers``."""
    get_event_bus().remove_handler(topic, PatientAnalyticsHandler)
    logger.debug(f"Event handlers removed from topic '{topic}'")
