"""Analytics consumer for patient events.

This module contains the handler that subscribes to the patient topic and
feeds the analytics counters.
"""

from loguru import logger

from patient_service.event_bus.core import EventHandler
from patient_service.events.types import PatientEvent
from patient_service.services.analytics_service import AnalyticsService


class PatientAnalyticsHandler(EventHandler[PatientEvent]):
    """Records every patient event received on the patient topic."""

    def __init__(self, analytics: AnalyticsService):
        self.analytics = analytics

    async def handle(self, event: PatientEvent) -> None:
        """Handle a patient lifecycle event.

        Args:
            event: The patient event snapshot
        """
        logger.info(f"Analytics: received {event.event_type} for patient {event.patient_id} ({event.email})")
        self.analytics.record(event)
