"""Record lifecycle: creation, transitions and soft delete.

State machine::

    pending --submit_self_assessment--> corrected --submit_review--> reviewed
    pending | corrected --cancel--> canceled

``reviewed`` and ``canceled`` are terminal. Every transition checks, in
order: current status, actor ownership, the caller's revision, then the
payload. Nothing on the record changes until all checks pass.
"""

import enum
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.record import (
    RecordOsat,
    RecordStatus,
    RecordStep,
    StepScore,
    SummaryScale,
    SurgicalRecord,
)
from app.schemas.auth import Actor
from app.schemas.record import (
    CancelRequest,
    RecordCreate,
    ReviewRequest,
    SelfAssessmentRequest,
)
from app.services.repository import RecordQuery, RecordRepository, SurgeryTemplateProvider
from app.services.scoring import osat_bounds, percent_completed, validate_osat

logger = logging.getLogger(__name__)


class Transition(str, enum.Enum):
    """Named record transitions."""

    SUBMIT_SELF_ASSESSMENT = "submit_self_assessment"
    SUBMIT_REVIEW = "submit_review"
    CANCEL = "cancel"


# transition -> (allowed source statuses, target status)
TRANSITIONS: dict[Transition, tuple[frozenset[RecordStatus], RecordStatus]] = {
    Transition.SUBMIT_SELF_ASSESSMENT: (
        frozenset({RecordStatus.PENDING}),
        RecordStatus.CORRECTED,
    ),
    Transition.SUBMIT_REVIEW: (
        frozenset({RecordStatus.CORRECTED}),
        RecordStatus.REVIEWED,
    ),
    Transition.CANCEL: (
        frozenset({RecordStatus.PENDING, RecordStatus.CORRECTED}),
        RecordStatus.CANCELED,
    ),
}


# ==========================================
# Guards
# ==========================================

def _require_status(record: SurgicalRecord, transition: Transition) -> RecordStatus:
    sources, target = TRANSITIONS[transition]
    if record.status not in sources:
        raise InvalidStateError(RecordStatus(record.status).value, transition.value)
    return target


def _require_revision(record: SurgicalRecord, revision: int) -> None:
    if record.revision != revision:
        raise ConflictError(
            "Record",
            str(record.id),
            expected_revision=revision,
            current_revision=record.revision,
        )


def _require_judgment(field: str, value: int) -> None:
    if not settings.JUDGMENT_MIN <= value <= settings.JUDGMENT_MAX:
        raise ValidationError(
            f"{field} must be between {settings.JUDGMENT_MIN} and {settings.JUDGMENT_MAX}",
            details={"field": field, "value": value},
        )


def _require_text(field: str, value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={"field": field})
    return value


def _match_by_name(
    field: str,
    existing: Sequence[str],
    submitted: Sequence[str],
) -> None:
    """Submitted names must cover the existing names exactly once each."""
    seen: set[str] = set()
    duplicates = []
    for name in submitted:
        if name in seen:
            duplicates.append(name)
        seen.add(name)

    unknown = sorted(seen - set(existing))
    missing = [name for name in existing if name not in seen]
    if duplicates or unknown or missing:
        raise ValidationError(
            f"{field} must reference every {field[:-1]} exactly once",
            details={
                "field": field,
                "duplicates": duplicates,
                "unknown": unknown,
                "missing": missing,
            },
        )


def _parse_enum(enum_cls: type[enum.Enum], field: str, value: str) -> enum.Enum:
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {field} '{value}'",
            details={"field": field, "allowed": [m.value for m in enum_cls]},
        )


# ==========================================
# Transitions
# ==========================================

def submit_self_assessment(
    record: SurgicalRecord,
    actor: Actor,
    request: SelfAssessmentRequest,
) -> SurgicalRecord:
    """Resident marks the steps they completed and judges themselves."""
    target = _require_status(record, Transition.SUBMIT_SELF_ASSESSMENT)
    if not (actor.is_resident and actor.actor_id == record.resident_id):
        raise ForbiddenError("Only the record's resident can submit the self-assessment")
    _require_revision(record, request.revision)

    _require_judgment("resident_judgment", request.resident_judgment)
    comment = _require_text("resident_comment", request.resident_comment)
    _match_by_name(
        "steps",
        [step.name for step in record.steps],
        [step.name for step in request.steps],
    )

    done_by_name = {step.name: step.resident_done for step in request.steps}
    for step in record.steps:
        step.resident_done = done_by_name[step.name]
    record.resident_judgment = request.resident_judgment
    record.resident_comment = comment
    record.percent_completed = percent_completed(record.steps)
    record.status = target

    logger.info(f"Record {record.id} self-assessed by resident {actor.actor_id}")
    return record


def submit_review(
    record: SurgicalRecord,
    actor: Actor,
    request: ReviewRequest,
) -> SurgicalRecord:
    """Teacher confirms steps, scores OSATs and grades the record."""
    target = _require_status(record, Transition.SUBMIT_REVIEW)
    if not (actor.is_teacher and actor.actor_id == record.teacher_id):
        raise ForbiddenError("Only the record's teacher can submit the review")
    _require_revision(record, request.revision)

    _require_judgment("teacher_judgment", request.teacher_judgment)
    summary_scale = _parse_enum(SummaryScale, "summary_scale", request.summary_scale)
    feedback = _require_text("feedback", request.feedback)

    _match_by_name(
        "steps",
        [step.name for step in record.steps],
        [step.name for step in request.steps],
    )
    step_updates: dict[str, tuple[bool, StepScore | None]] = {}
    for step_input in request.steps:
        if step_input.teacher_done and step_input.score is None:
            raise ValidationError(
                f"Step '{step_input.name}' is confirmed but has no score",
                details={"field": "steps", "name": step_input.name},
            )
        if not step_input.teacher_done and step_input.score is not None:
            raise ValidationError(
                f"Step '{step_input.name}' can only be scored once confirmed",
                details={"field": "steps", "name": step_input.name},
            )
        score = None
        if step_input.score is not None:
            score = _parse_enum(StepScore, "score", step_input.score)
        step_updates[step_input.name] = (step_input.teacher_done, score)

    _match_by_name(
        "osats",
        [osat.item for osat in record.osats],
        [osat.item for osat in request.osats],
    )
    obtained_by_item = {osat.item: osat.obtained for osat in request.osats}
    for osat in record.osats:
        validate_osat(obtained_by_item[osat.item], osat.scale_points, item=osat.item)

    for step in record.steps:
        teacher_done, score = step_updates[step.name]
        step.teacher_done = teacher_done
        if score is not None:
            step.score = score
    for osat in record.osats:
        osat.obtained = obtained_by_item[osat.item]
    record.teacher_judgment = request.teacher_judgment
    record.summary_scale = summary_scale
    record.feedback = feedback
    record.percent_completed = percent_completed(record.steps)
    record.status = target

    logger.info(
        f"Record {record.id} reviewed by teacher {actor.actor_id} "
        f"({record.percent_completed}% completed, scale {summary_scale.value})"
    )
    return record


def cancel(
    record: SurgicalRecord,
    actor: Actor,
    request: CancelRequest,
) -> SurgicalRecord:
    """Admin or owning resident withdraws a record that is not yet reviewed."""
    target = _require_status(record, Transition.CANCEL)
    owner = actor.is_resident and actor.actor_id == record.resident_id
    if not (actor.is_admin or owner):
        raise ForbiddenError("Only an admin or the record's resident can cancel it")
    _require_revision(record, request.revision)

    previous_status = RecordStatus(record.status)
    record.status = target
    logger.info(
        f"Record {record.id} canceled from {previous_status.value} "
        f"by {actor.role.value} {actor.actor_id}"
    )
    return record


def soft_delete(record: SurgicalRecord, actor: Actor, revision: int) -> SurgicalRecord:
    """Hide a record from default queries. Admin only, any status."""
    if not actor.is_admin:
        raise ForbiddenError("Only an admin can delete records")
    _require_revision(record, revision)

    record.deleted = True
    logger.info(f"Record {record.id} soft-deleted by admin {actor.actor_id}")
    return record


# ==========================================
# Service
# ==========================================

class RecordLifecycleService:
    """Load -> transition -> save, against an injected repository."""

    def __init__(
        self,
        repository: RecordRepository,
        templates: SurgeryTemplateProvider,
    ):
        self.repository = repository
        self.templates = templates

    def create_record(self, actor: Actor, request: RecordCreate) -> SurgicalRecord:
        """Create a pending record from the surgery's templates."""
        if actor.is_resident:
            if request.resident_id is not None and request.resident_id != actor.actor_id:
                raise ForbiddenError("Residents can only create their own records")
            resident_id = actor.actor_id
        elif actor.is_admin:
            if request.resident_id is None:
                raise ValidationError("resident_id is required", details={"field": "resident_id"})
            resident_id = request.resident_id
        else:
            raise ForbiddenError("Only residents or admins can create records")

        performed_at = request.date
        if performed_at.tzinfo is None:
            performed_at = performed_at.replace(tzinfo=timezone.utc)
        if performed_at > datetime.now(timezone.utc):
            raise ValidationError(
                "Surgery date cannot be in the future",
                details={"field": "date", "value": performed_at.isoformat()},
            )

        template = self.templates.get_template(request.surgery_id)

        steps = [
            RecordStep(
                position=position,
                name=name,
                resident_done=False,
                teacher_done=False,
                score=StepScore.A,
            )
            for position, name in enumerate(template.steps)
        ]
        osats = [
            RecordOsat(
                position=position,
                item=osat.item,
                scale=[point.model_dump() for point in osat.scale],
                obtained=osat_bounds(osat.scale)[0],
            )
            for position, osat in enumerate(template.osats)
        ]

        record = SurgicalRecord(
            resident_id=resident_id,
            teacher_id=request.teacher_id,
            surgery_id=template.surgery_id,
            patient_id=request.patient_id,
            date=performed_at,
            status=RecordStatus.PENDING,
            residents_year=request.residents_year,
            steps=steps,
            osats=osats,
            resident_judgment=0,
            teacher_judgment=0,
            summary_scale=SummaryScale.A,
            resident_comment="",
            feedback="",
            percent_completed=percent_completed(steps),
            deleted=False,
        )
        record = self.repository.add(record)

        logger.info(
            f"Record {record.id} created for resident {resident_id} "
            f"on surgery '{template.name}' ({len(steps)} steps, {len(osats)} OSATs)"
        )
        return record

    def get_record(self, record_id: int, actor: Actor) -> SurgicalRecord:
        """Get a record visible to the actor."""
        record = self.repository.load(record_id)
        if record.deleted and not actor.is_admin:
            raise NotFoundError("Record", str(record_id))
        if not self._can_view(record, actor):
            raise ForbiddenError("You do not have access to this record")
        return record

    def list_records(
        self,
        actor: Actor,
        statuses: frozenset[RecordStatus] | None = None,
        surgery_id: int | None = None,
        include_deleted: bool = False,
    ) -> list[SurgicalRecord]:
        """Records owned by the actor; admins see every record."""
        deleted: bool | None = False
        if include_deleted:
            if not actor.is_admin:
                raise ForbiddenError("Only an admin can list deleted records")
            deleted = None

        filters = RecordQuery(
            statuses=statuses,
            deleted=deleted,
            surgery_id=surgery_id,
            resident_id=actor.actor_id if actor.is_resident else None,
            teacher_id=actor.actor_id if actor.is_teacher else None,
        )
        return self.repository.query(filters)

    def submit_self_assessment(
        self,
        record_id: int,
        actor: Actor,
        request: SelfAssessmentRequest,
    ) -> SurgicalRecord:
        record = self._load_active(record_id)
        submit_self_assessment(record, actor, request)
        return self.repository.save(record)

    def submit_review(
        self,
        record_id: int,
        actor: Actor,
        request: ReviewRequest,
    ) -> SurgicalRecord:
        record = self._load_active(record_id)
        submit_review(record, actor, request)
        return self.repository.save(record)

    def cancel(
        self,
        record_id: int,
        actor: Actor,
        request: CancelRequest,
    ) -> tuple[SurgicalRecord, RecordStatus]:
        """Cancel a record; returns it with the status it was canceled from."""
        record = self._load_active(record_id)
        previous_status = RecordStatus(record.status)
        cancel(record, actor, request)
        return self.repository.save(record), previous_status

    def soft_delete(self, record_id: int, actor: Actor, revision: int) -> SurgicalRecord:
        record = self._load_active(record_id)
        soft_delete(record, actor, revision)
        return self.repository.save(record)

    def _load_active(self, record_id: int) -> SurgicalRecord:
        record = self.repository.load(record_id)
        if record.deleted:
            raise NotFoundError("Record", str(record_id))
        return record

    @staticmethod
    def _can_view(record: SurgicalRecord, actor: Actor) -> bool:
        if actor.is_admin:
            return True
        if actor.is_resident:
            return record.resident_id == actor.actor_id
        return record.teacher_id == actor.actor_id
