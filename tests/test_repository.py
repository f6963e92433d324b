"""Tests for record persistence, filtering and stale-write detection."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.record import RecordStatus
from app.models.surgery import Surgery
from app.schemas.record import CancelRequest
from app.services.repository import RecordQuery, RecordRepository, SurgeryTemplateProvider

from .conftest import LIKERT_SCALE, OTHER_RESIDENT_ID, RESIDENT_ID, TEACHER_ID


@pytest.fixture
def repository(db) -> RecordRepository:
    return RecordRepository(db)


class TestRecordRepository:
    """Test load / save / query"""

    def test_load_unknown_record(self, repository):
        with pytest.raises(NotFoundError):
            repository.load(999)

    def test_load_returns_steps_in_order(self, repository, pending_record):
        record = repository.load(pending_record.id)

        assert [s.position for s in record.steps] == [0, 1, 2]
        assert [o.position for o in record.osats] == [0, 1]

    def test_save_bumps_revision(self, repository, pending_record):
        pending_record.status = RecordStatus.CORRECTED
        repository.save(pending_record)

        assert pending_record.revision == 2

    def test_concurrent_write_is_conflict(self, db, service, resident, pending_record):
        # Another writer commits a change the session has not seen
        db.execute(
            text("UPDATE records SET revision = revision + 1 WHERE id = :id"),
            {"id": pending_record.id},
        )

        with pytest.raises(ConflictError):
            service.cancel(pending_record.id, resident, CancelRequest(revision=1))

    def test_query_newest_first(self, service, resident, record_create, repository):
        now = datetime.now(timezone.utc)
        older = service.create_record(resident, record_create(date=now - timedelta(days=10)))
        newer = service.create_record(resident, record_create(date=now - timedelta(days=1)))

        assert [r.id for r in repository.query()] == [newer.id, older.id]

    def test_query_hides_deleted_by_default(self, repository, pending_record):
        pending_record.deleted = True
        repository.save(pending_record)

        assert repository.query() == []
        assert [r.id for r in repository.query(RecordQuery(deleted=None))] == [pending_record.id]
        assert [r.id for r in repository.query(RecordQuery(deleted=True))] == [pending_record.id]

    def test_query_filters(self, service, admin, resident, record_create, other_surgery, repository):
        mine = service.create_record(resident, record_create())
        theirs = service.create_record(
            admin,
            record_create(resident_id=OTHER_RESIDENT_ID, surgery_id=other_surgery.id),
        )

        assert [r.id for r in repository.query(RecordQuery(resident_id=RESIDENT_ID))] == [mine.id]
        assert [r.id for r in repository.query(RecordQuery(surgery_id=other_surgery.id))] == [theirs.id]
        assert len(repository.query(RecordQuery(teacher_id=TEACHER_ID))) == 2
        assert repository.query(RecordQuery(statuses=frozenset({RecordStatus.REVIEWED}))) == []

    def test_analytics_query_only_committed_statuses(self, repository, pending_record):
        assert repository.query(RecordQuery.for_analytics(RESIDENT_ID)) == []

        pending_record.status = RecordStatus.CORRECTED
        repository.save(pending_record)

        assert [r.id for r in repository.query(RecordQuery.for_analytics(RESIDENT_ID))] == [pending_record.id]
        assert repository.query(RecordQuery.for_analytics(OTHER_RESIDENT_ID)) == []


class TestSurgeryTemplateProvider:
    """Test surgery template lookup"""

    def test_get_template(self, db, surgery):
        template = SurgeryTemplateProvider(db).get_template(surgery.id)

        assert template.name == "Appendectomy"
        assert template.steps == ["Incision", "Dissection", "Closure"]
        assert [o.item for o in template.osats] == ["Respect for tissue", "Time and motion"]
        assert [p.punctuation for p in template.osats[0].scale] == [1, 2, 3, 4, 5]

    def test_unknown_surgery(self, db):
        with pytest.raises(NotFoundError):
            SurgeryTemplateProvider(db).get_template(404)

    def test_repeated_step_names_are_rejected(self, db):
        surgery = Surgery(
            name="Skin graft",
            area="Plastic Surgery",
            steps=["Suture", "Harvest", "Suture"],
            osats=[{"item": "Flow", "scale": LIKERT_SCALE}],
        )
        db.add(surgery)
        db.flush()

        with pytest.raises(ValidationError) as exc_info:
            SurgeryTemplateProvider(db).get_template(surgery.id)

        assert exc_info.value.details["surgery_id"] == surgery.id
        assert "Suture" in exc_info.value.details["errors"][0]["msg"]

    def test_repeated_osat_items_are_rejected(self, db):
        surgery = Surgery(
            name="Skin graft",
            area="Plastic Surgery",
            steps=["Harvest"],
            osats=[
                {"item": "Flow", "scale": LIKERT_SCALE},
                {"item": "Flow", "scale": LIKERT_SCALE},
            ],
        )
        db.add(surgery)
        db.flush()

        with pytest.raises(ValidationError) as exc_info:
            SurgeryTemplateProvider(db).get_template(surgery.id)

        assert "Flow" in exc_info.value.details["errors"][0]["msg"]
