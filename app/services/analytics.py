"""Read-only dashboard projections over surgical records.

The projection functions take records that are already filtered to
``corrected``/``reviewed`` and not deleted. Records whose surgery cannot
be resolved are skipped (and logged) rather than failing the dashboard.
Nothing is cached: projections are recomputed on every call.
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta

from app.core.exceptions import ForbiddenError
from app.models.record import SurgicalRecord
from app.schemas.analytics import (
    CompletionTrendPoint,
    CompletionTrendResponse,
    PeriodCount,
    PeriodGranularity,
    ScaleHistoryEntry,
    ScaleHistoryResponse,
    SurgeryCount,
)
from app.schemas.auth import Actor
from app.services.repository import RecordQuery, RecordRepository
from app.services.scoring import percent_completed

logger = logging.getLogger(__name__)


def _with_surgery_name(records: Iterable[SurgicalRecord]) -> Iterator[tuple[str, SurgicalRecord]]:
    for record in records:
        name = record.surgery_name
        if not name:
            logger.warning(
                f"Record {record.id} skipped in analytics: surgery {record.surgery_id} not resolved"
            )
            continue
        yield name, record


def completion_trend(
    records: Iterable[SurgicalRecord],
    surgery_name: str | None = None,
) -> CompletionTrendResponse:
    """One completion-percentage row per record, oldest first."""
    surgeries: list[str] = []
    data: list[CompletionTrendPoint] = []

    for name, record in _with_surgery_name(records):
        if name not in surgeries:
            surgeries.append(name)
        if surgery_name is not None and name != surgery_name:
            continue
        data.append(
            CompletionTrendPoint(
                surgery=name,
                month=record.date.strftime("%Y-%m"),
                date=record.date,
                percent=percent_completed(record.steps),
            )
        )

    data.sort(key=lambda row: row.date)
    return CompletionTrendResponse(surgeries=surgeries, data=data)


def summary_scale_history(
    records: Iterable[SurgicalRecord],
    limit: int | None = None,
) -> ScaleHistoryResponse:
    """Summary-scale grades grouped by surgery, newest first within each group."""
    grouped: dict[str, list[SurgicalRecord]] = {}
    for name, record in _with_surgery_name(records):
        grouped.setdefault(name, []).append(record)

    data: list[ScaleHistoryEntry] = []
    for name, group in grouped.items():
        group.sort(key=lambda r: r.date, reverse=True)
        if limit is not None:
            group = group[:limit]
        data.extend(
            ScaleHistoryEntry(surgery=name, date=r.date, scale=r.summary_scale)
            for r in group
        )

    return ScaleHistoryResponse(surgeries=list(grouped), data=data)


def surgery_distribution(records: Iterable[SurgicalRecord]) -> list[SurgeryCount]:
    """Record count per surgery, in order of first appearance."""
    counts: dict[str, int] = {}
    for name, _ in _with_surgery_name(records):
        counts[name] = counts.get(name, 0) + 1
    return [SurgeryCount(name=name, count=count) for name, count in counts.items()]


def _period_key(value: datetime, period: PeriodGranularity) -> str:
    if period == PeriodGranularity.WEEK:
        week_start = value - timedelta(days=value.weekday())
        return week_start.strftime("%Y-%m-%d")
    if period == PeriodGranularity.MONTH:
        return value.strftime("%Y-%m")
    return value.strftime("%Y")


def records_per_period(
    records: Iterable[SurgicalRecord],
    period: PeriodGranularity = PeriodGranularity.MONTH,
) -> list[PeriodCount]:
    """Record count per week (Monday start), month or year, oldest first."""
    counts: dict[str, int] = {}
    for record in records:
        key = _period_key(record.date, period)
        counts[key] = counts.get(key, 0) + 1
    return [PeriodCount(period=key, count=counts[key]) for key in sorted(counts)]


class RecordAnalyticsService:
    """Dashboard data for one resident."""

    def __init__(self, repository: RecordRepository):
        self.repository = repository

    def get_completion_trend(
        self,
        actor: Actor,
        resident_id: int,
        surgery_name: str | None = None,
    ) -> CompletionTrendResponse:
        return completion_trend(self._records(actor, resident_id), surgery_name)

    def get_scale_history(
        self,
        actor: Actor,
        resident_id: int,
        limit: int | None = None,
    ) -> ScaleHistoryResponse:
        return summary_scale_history(self._records(actor, resident_id), limit)

    def get_surgery_distribution(self, actor: Actor, resident_id: int) -> list[SurgeryCount]:
        return surgery_distribution(self._records(actor, resident_id))

    def get_records_per_period(
        self,
        actor: Actor,
        resident_id: int,
        period: PeriodGranularity = PeriodGranularity.MONTH,
    ) -> list[PeriodCount]:
        return records_per_period(self._records(actor, resident_id), period)

    def _records(self, actor: Actor, resident_id: int) -> list[SurgicalRecord]:
        # Residents only see their own dashboard; teachers and admins pick a resident
        if actor.is_resident and actor.actor_id != resident_id:
            raise ForbiddenError("Residents can only view their own analytics")
        return self.repository.query(RecordQuery.for_analytics(resident_id))
