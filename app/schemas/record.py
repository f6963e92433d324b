"""Surgical record schemas."""

from datetime import datetime

from pydantic import ConfigDict, Field

from app.models.record import RecordStatus, StepScore, SummaryScale
from app.schemas.common import BaseSchema, TimestampSchema
from app.schemas.surgery import OsatScalePoint


# ==========================================
# Record Creation
# ==========================================

class RecordCreate(BaseSchema):
    """New record submitted by a resident."""

    resident_id: int | None = Field(
        None, description="Defaults to the calling resident; required when an admin creates"
    )
    teacher_id: int
    surgery_id: int
    patient_id: str
    date: datetime
    residents_year: int


# ==========================================
# Transition Requests
# ==========================================

class TransitionRequest(BaseSchema):
    """Base for every state transition - carries the caller's revision."""

    model_config = ConfigDict(extra="forbid")

    revision: int = Field(..., description="Revision the caller last read")


class ResidentStepInput(BaseSchema):
    """Resident self-assessment of one step."""

    model_config = ConfigDict(extra="forbid")

    name: str
    resident_done: bool


class SelfAssessmentRequest(TransitionRequest):
    """pending -> corrected."""

    steps: list[ResidentStepInput]
    resident_judgment: int
    resident_comment: str = ""


class TeacherStepInput(BaseSchema):
    """Teacher confirmation of one step; score only when confirmed."""

    model_config = ConfigDict(extra="forbid")

    name: str
    teacher_done: bool
    score: str | None = None


class OsatInput(BaseSchema):
    """Obtained value for one OSAT item."""

    model_config = ConfigDict(extra="forbid")

    item: str
    obtained: int


class ReviewRequest(TransitionRequest):
    """corrected -> reviewed."""

    steps: list[TeacherStepInput]
    osats: list[OsatInput]
    teacher_judgment: int
    summary_scale: str
    feedback: str = ""


class CancelRequest(TransitionRequest):
    """pending|corrected -> canceled."""


# ==========================================
# Responses
# ==========================================

class RecordStepResponse(BaseSchema):
    """Step as stored on a record."""

    position: int
    name: str
    resident_done: bool
    teacher_done: bool
    score: StepScore


class RecordOsatResponse(BaseSchema):
    """OSAT evaluation as stored on a record."""

    position: int
    item: str
    scale: list[OsatScalePoint]
    obtained: int


class RecordResponse(TimestampSchema):
    """Full record."""

    id: int
    resident_id: int
    teacher_id: int
    surgery_id: int
    surgery_name: str | None
    patient_id: str
    date: datetime
    status: RecordStatus
    residents_year: int
    steps: list[RecordStepResponse]
    osats: list[RecordOsatResponse]
    resident_judgment: int
    teacher_judgment: int
    summary_scale: SummaryScale
    resident_comment: str
    feedback: str
    percent_completed: int
    deleted: bool
    revision: int


class RecordListItem(BaseSchema):
    """Record summary for list views."""

    id: int
    resident_id: int
    teacher_id: int
    surgery_name: str | None
    patient_id: str
    date: datetime
    status: RecordStatus
    summary_scale: SummaryScale
    percent_completed: int
    revision: int
