"""Dashboard analytics schemas."""

import enum
from datetime import datetime

from app.models.record import SummaryScale
from app.schemas.common import BaseSchema


class PeriodGranularity(str, enum.Enum):
    """Bucket size for record counts."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class CompletionTrendPoint(BaseSchema):
    """Completion percentage of one record, keyed by surgery and month."""

    surgery: str
    month: str  # YYYY-MM
    date: datetime
    percent: int


class CompletionTrendResponse(BaseSchema):
    """Completion trend rows plus the surgeries available to chart."""

    surgeries: list[str]
    data: list[CompletionTrendPoint]


class ScaleHistoryEntry(BaseSchema):
    """Summary-scale grade of one record."""

    surgery: str
    date: datetime
    scale: SummaryScale


class ScaleHistoryResponse(BaseSchema):
    surgeries: list[str]
    data: list[ScaleHistoryEntry]


class SurgeryCount(BaseSchema):
    """Number of records of one surgery."""

    name: str
    count: int


class PeriodCount(BaseSchema):
    """Number of records in one period bucket."""

    period: str
    count: int
