"""Audit logging service."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.audit import AuditAction, AuditLog
from app.models.record import SurgicalRecord
from app.schemas.auth import Actor


class AuditService:
    """Audit logging service - append-only."""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: str | None = None,
        actor: Actor | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        log = AuditLog(
            actor_id=actor.actor_id if actor else None,
            actor_role=actor.role.value if actor else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            description=description,
            extra_data=metadata,
            ip_address=ip_address,
        )
        self.db.add(log)
        self.db.flush()
        return log

    def list_for_resource(self, resource_type: str, resource_id: str) -> list[AuditLog]:
        result = self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.resource_type == resource_type,
                AuditLog.resource_id == resource_id,
            )
            .order_by(AuditLog.created_at, AuditLog.id)
        )
        return list(result.scalars().all())


def audit_record_change(
    db: Session,
    action: AuditAction,
    record: SurgicalRecord,
    actor: Actor,
    previous_status: str | None = None,
    ip_address: str | None = None,
) -> None:
    """Log a record creation, transition or deletion."""
    service = AuditService(db)
    service.log(
        action=action,
        resource_type="record",
        resource_id=str(record.id),
        actor=actor,
        description=f"Record {record.id} {action.value.lower().replace('record_', '')}",
        metadata={
            "previous_status": previous_status,
            "status": record.status.value,
            "revision": record.revision,
        },
        ip_address=ip_address,
    )
