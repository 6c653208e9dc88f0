"""Analytics API - counters fed by the patient event consumer."""

from fastapi import APIRouter, Depends

from patient_service.services.analytics_service import AnalyticsService, PatientEventStats, get_analytics_service

router = APIRouter()


@router.get("/analytics/patient-events", response_model=PatientEventStats)
def get_patient_event_stats(
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> PatientEventStats:
    """Get the number of patient events consumed, per event type."""
    return analytics.stats()
