"""Resident dashboard analytics endpoints."""

from fastapi import APIRouter, Query

from app.core.config import settings
from app.core.dependencies import AnalyticsService, CurrentActor
from app.schemas.analytics import (
    CompletionTrendResponse,
    PeriodCount,
    PeriodGranularity,
    ScaleHistoryResponse,
    SurgeryCount,
)

router = APIRouter()


@router.get("/residents/{resident_id}/completion-trend", response_model=CompletionTrendResponse)
def get_completion_trend(
    resident_id: int,
    actor: CurrentActor,
    service: AnalyticsService,
    surgery: str | None = Query(None, description="Only rows of this surgery"),
):
    """
    Per-record completion percentage, oldest first.
    Only corrected and reviewed records are counted.
    """
    return service.get_completion_trend(actor, resident_id, surgery_name=surgery)


@router.get("/residents/{resident_id}/scale-history", response_model=ScaleHistoryResponse)
def get_scale_history(
    resident_id: int,
    actor: CurrentActor,
    service: AnalyticsService,
    limit: int | None = Query(
        settings.SCALE_HISTORY_LIMIT, ge=1, description="Entries per surgery"
    ),
):
    """Most recent summary-scale grades per surgery."""
    return service.get_scale_history(actor, resident_id, limit=limit)


@router.get("/residents/{resident_id}/surgery-distribution", response_model=list[SurgeryCount])
def get_surgery_distribution(
    resident_id: int,
    actor: CurrentActor,
    service: AnalyticsService,
):
    """Number of records per surgery type."""
    return service.get_surgery_distribution(actor, resident_id)


@router.get("/residents/{resident_id}/records-per-period", response_model=list[PeriodCount])
def get_records_per_period(
    resident_id: int,
    actor: CurrentActor,
    service: AnalyticsService,
    period: PeriodGranularity = PeriodGranularity.MONTH,
):
    """Record counts per week, month or year."""
    return service.get_records_per_period(actor, resident_id, period=period)
