"""Database models package."""

from app.models.audit import AuditAction, AuditLog
from app.models.record import (
    RecordOsat,
    RecordStatus,
    RecordStep,
    StepScore,
    SummaryScale,
    SurgicalRecord,
)
from app.models.surgery import Surgery

__all__ = [
    # Surgery
    "Surgery",
    # Records
    "SurgicalRecord",
    "RecordStep",
    "RecordOsat",
    "RecordStatus",
    "StepScore",
    "SummaryScale",
    # Audit
    "AuditLog",
    "AuditAction",
]
