"""Shared fixtures: in-memory database, seeded surgery, actors and services."""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app as fastapi_app
from app.models.record import RecordOsat, RecordStep, SurgicalRecord
from app.models.surgery import Surgery
from app.schemas.auth import Actor, ActorRole
from app.schemas.record import RecordCreate
from app.services.lifecycle import RecordLifecycleService
from app.services.repository import RecordRepository, SurgeryTemplateProvider

RESIDENT_ID = 1
TEACHER_ID = 2
OTHER_RESIDENT_ID = 3
OTHER_TEACHER_ID = 4
ADMIN_ID = 99

LIKERT_SCALE = [
    {"punctuation": 1, "description": "Poor"},
    {"punctuation": 2},
    {"punctuation": 3, "description": "Competent"},
    {"punctuation": 4},
    {"punctuation": 5, "description": "Excellent"},
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    session = Session(engine, expire_on_commit=False, autoflush=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def surgery(db: Session) -> Surgery:
    surgery = Surgery(
        name="Appendectomy",
        area="General Surgery",
        steps=["Incision", "Dissection", "Closure"],
        osats=[
            {"item": "Respect for tissue", "scale": LIKERT_SCALE},
            {"item": "Time and motion", "scale": LIKERT_SCALE},
        ],
    )
    db.add(surgery)
    db.flush()
    return surgery


@pytest.fixture
def other_surgery(db: Session) -> Surgery:
    surgery = Surgery(
        name="Cholecystectomy",
        area="General Surgery",
        steps=["Port placement", "Clipping"],
        osats=[{"item": "Instrument handling", "scale": LIKERT_SCALE}],
    )
    db.add(surgery)
    db.flush()
    return surgery


@pytest.fixture
def resident() -> Actor:
    return Actor(actor_id=RESIDENT_ID, role=ActorRole.RESIDENT)


@pytest.fixture
def other_resident() -> Actor:
    return Actor(actor_id=OTHER_RESIDENT_ID, role=ActorRole.RESIDENT)


@pytest.fixture
def teacher() -> Actor:
    return Actor(actor_id=TEACHER_ID, role=ActorRole.TEACHER)


@pytest.fixture
def other_teacher() -> Actor:
    return Actor(actor_id=OTHER_TEACHER_ID, role=ActorRole.TEACHER)


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id=ADMIN_ID, role=ActorRole.ADMIN)


@pytest.fixture
def service(db: Session) -> RecordLifecycleService:
    return RecordLifecycleService(
        repository=RecordRepository(db),
        templates=SurgeryTemplateProvider(db),
    )


@pytest.fixture
def record_create(surgery: Surgery):
    def _make(**overrides) -> RecordCreate:
        data = {
            "teacher_id": TEACHER_ID,
            "surgery_id": surgery.id,
            "patient_id": " 12.345.678-5 ",
            "date": datetime.now(timezone.utc) - timedelta(days=1),
            "residents_year": 2,
        }
        data.update(overrides)
        return RecordCreate(**data)

    return _make


@pytest.fixture
def pending_record(service, resident, record_create) -> SurgicalRecord:
    return service.create_record(resident, record_create())


@pytest.fixture
def make_record():
    """In-memory record for pure projection tests (never flushed)."""

    def _make(
        surgery_name: str | None = "Appendectomy",
        date: datetime | None = None,
        steps: list[tuple[bool, bool, str]] | None = None,
        summary_scale: str = "A",
        status: str = "reviewed",
    ) -> SurgicalRecord:
        steps = steps if steps is not None else [(True, True, "a")]
        return SurgicalRecord(
            resident_id=RESIDENT_ID,
            teacher_id=TEACHER_ID,
            surgery_id=1,
            surgery=Surgery(name=surgery_name, area="General") if surgery_name else None,
            patient_id="patient",
            date=date or datetime(2025, 5, 19, 10, 0),
            status=status,
            residents_year=1,
            summary_scale=summary_scale,
            steps=[
                RecordStep(
                    position=i,
                    name=f"Step {i}",
                    resident_done=resident_done,
                    teacher_done=teacher_done,
                    score=score,
                )
                for i, (resident_done, teacher_done, score) in enumerate(steps)
            ],
            osats=[RecordOsat(position=0, item="Flow", scale=LIKERT_SCALE, obtained=1)],
        )

    return _make


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor) -> dict[str, str]:
        token = create_access_token(actor.actor_id, actor.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers
