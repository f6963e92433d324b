"""Persistence contract for records and surgery templates."""

import logging

import pydantic
from pydantic import ConfigDict
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.record import RecordStatus, SurgicalRecord
from app.models.surgery import Surgery
from app.schemas.common import BaseSchema
from app.schemas.surgery import SurgeryTemplate

logger = logging.getLogger(__name__)


class RecordQuery(BaseSchema):
    """Filter accepted by RecordRepository.query."""

    model_config = ConfigDict(frozen=True)

    statuses: frozenset[RecordStatus] | None = None
    deleted: bool | None = False
    surgery_id: int | None = None
    resident_id: int | None = None
    teacher_id: int | None = None

    @classmethod
    def for_analytics(cls, resident_id: int) -> "RecordQuery":
        """Committed, visible records of one resident."""
        return cls(
            statuses=frozenset({RecordStatus.CORRECTED, RecordStatus.REVIEWED}),
            deleted=False,
            resident_id=resident_id,
        )


class RecordRepository:
    """Load / save / query verbs over SurgicalRecord."""

    def __init__(self, db: Session):
        self.db = db

    def load(self, record_id: int) -> SurgicalRecord:
        """Get a record by ID, including soft-deleted ones."""
        record = self.db.get(SurgicalRecord, record_id)
        if not record:
            raise NotFoundError("Record", str(record_id))
        return record

    def add(self, record: SurgicalRecord) -> SurgicalRecord:
        self.db.add(record)
        self.db.flush()
        self.db.refresh(record)
        return record

    def save(self, record: SurgicalRecord) -> SurgicalRecord:
        """Flush pending changes; a stale revision surfaces as ConflictError."""
        try:
            self.db.flush()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Stale write rejected for record {record.id}")
            raise ConflictError("Record", str(record.id))
        return record

    def query(self, filters: RecordQuery | None = None) -> list[SurgicalRecord]:
        """List records matching the filter, newest first."""
        filters = filters or RecordQuery()
        query = select(SurgicalRecord)

        if filters.statuses is not None:
            query = query.where(SurgicalRecord.status.in_(list(filters.statuses)))
        if filters.deleted is not None:
            query = query.where(SurgicalRecord.deleted == filters.deleted)
        if filters.surgery_id is not None:
            query = query.where(SurgicalRecord.surgery_id == filters.surgery_id)
        if filters.resident_id is not None:
            query = query.where(SurgicalRecord.resident_id == filters.resident_id)
        if filters.teacher_id is not None:
            query = query.where(SurgicalRecord.teacher_id == filters.teacher_id)

        query = query.order_by(SurgicalRecord.date.desc(), SurgicalRecord.id.desc())
        result = self.db.execute(query)
        return list(result.scalars().all())


class SurgeryTemplateProvider:
    """Resolves a surgery ID into the templates copied onto new records."""

    def __init__(self, db: Session):
        self.db = db

    def get_template(self, surgery_id: int) -> SurgeryTemplate:
        surgery = self.db.get(Surgery, surgery_id)
        if not surgery:
            raise NotFoundError("Surgery", str(surgery_id))
        try:
            return SurgeryTemplate(
                surgery_id=surgery.id,
                name=surgery.name,
                area=surgery.area,
                steps=list(surgery.steps or []),
                osats=list(surgery.osats or []),
            )
        except pydantic.ValidationError as e:
            logger.warning(f"Surgery {surgery_id} has an invalid template: {e}")
            raise ValidationError(
                f"Surgery {surgery_id} has an invalid step or OSAT template",
                details={
                    "surgery_id": surgery_id,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            )
