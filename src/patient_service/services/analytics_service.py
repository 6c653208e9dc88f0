"""Service aggregating patient events seen by the analytics consumer."""

import threading
from collections import Counter
from datetime import datetime
from functools import lru_cache

from pydantic import BaseModel, Field

from patient_service.events.types import PatientEvent, PatientEventType


class PatientEventStats(BaseModel):
    """Snapshot of the analytics counters."""

    total: int = 0
    by_type: dict[PatientEventType, int] = Field(default_factory=dict)
    last_event_at: datetime | None = None


class AnalyticsService:
    """Counts patient events per type.

    Handlers run on whichever worker thread published the event, so updates
    are serialised with a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Counter[PatientEventType] = Counter()
        self._last_event_at: datetime | None = None

    def record(self, event: PatientEvent) -> None:
        with self._lock:
            self._counts[event.event_type] += 1
            if self._last_event_at is None or event.occurred_at > self._last_event_at:
                self._last_event_at = event.occurred_at

    def stats(self) -> PatientEventStats:
        with self._lock:
            return PatientEventStats(
                total=sum(self._counts.values()),
                by_type=dict(self._counts),
                last_event_at=self._last_event_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._last_event_at = None


@lru_cache
def get_analytics_service() -> AnalyticsService:
    """Get the analytics service singleton."""
    return AnalyticsService()
