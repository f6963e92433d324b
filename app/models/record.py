"""Surgical competency record models."""

import enum
from datetime import datetime
from typing import Any

import pydantic
from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.database import Base
from app.core.exceptions import ValidationError
from app.models.base import IDMixin, JSONType, TimestampMixin
from app.schemas.surgery import OsatScalePoint


class RecordStatus(str, enum.Enum):
    """Record lifecycle status."""

    PENDING = "pending"
    CORRECTED = "corrected"
    REVIEWED = "reviewed"
    CANCELED = "canceled"


class StepScore(str, enum.Enum):
    """Supervisor score for a single step."""

    A = "a"
    B = "b"
    C = "c"
    NOT_APPLICABLE = "n/a"


class SummaryScale(str, enum.Enum):
    """Overall competency letter grade."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


def _coerce_enum(enum_cls: type[enum.Enum], field: str, value: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"Invalid {field} '{value}'",
            details={"field": field, "allowed": allowed},
        )


class SurgicalRecord(Base, IDMixin, TimestampMixin):
    """One resident's performance on one surgery, evaluated by one teacher."""

    __tablename__ = "records"

    # Users live in the identity provider, so these are plain references
    resident_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    teacher_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    surgery_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("surgeries.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    patient_id: Mapped[str] = mapped_column(String(50), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[RecordStatus] = mapped_column(
        Enum(RecordStatus),
        default=RecordStatus.PENDING,
        nullable=False,
        index=True,
    )
    residents_year: Mapped[int] = mapped_column(Integer, nullable=False)

    resident_judgment: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    teacher_judgment: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    summary_scale: Mapped[SummaryScale] = mapped_column(
        Enum(SummaryScale),
        default=SummaryScale.A,
        nullable=False,
    )
    resident_comment: Mapped[str] = mapped_column(Text, default="", nullable=False)
    feedback: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Derived from steps on every transition
    percent_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # Optimistic concurrency token, bumped by SQLAlchemy on every UPDATE
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    surgery: Mapped["Surgery | None"] = relationship(
        "Surgery",
        back_populates="records",
        lazy="selectin",
    )
    steps: Mapped[list["RecordStep"]] = relationship(
        "RecordStep",
        back_populates="record",
        order_by="RecordStep.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    osats: Mapped[list["RecordOsat"]] = relationship(
        "RecordOsat",
        back_populates="record",
        order_by="RecordOsat.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": revision}

    @validates("patient_id")
    def validate_patient_id(self, key: str, value: str | None) -> str:
        value = (value or "").strip()
        if not value:
            raise ValidationError("patient_id is required", details={"field": key})
        return value

    @validates("residents_year")
    def validate_residents_year(self, key: str, value: int) -> int:
        if value is None or value < 1:
            raise ValidationError(
                "residents_year must be a positive integer",
                details={"field": key, "value": value},
            )
        return value

    @validates("resident_id", "teacher_id", "surgery_id")
    def validate_reference(self, key: str, value: int | None) -> int:
        if value is None:
            raise ValidationError(f"{key} is required", details={"field": key})
        return value

    @validates("status")
    def validate_status(self, key: str, value: Any) -> RecordStatus:
        return _coerce_enum(RecordStatus, key, value)

    @validates("summary_scale")
    def validate_summary_scale(self, key: str, value: Any) -> SummaryScale:
        return _coerce_enum(SummaryScale, key, value)

    @validates("resident_comment", "feedback")
    def validate_text(self, key: str, value: str | None) -> str:
        return (value or "").strip()

    @property
    def surgery_name(self) -> str | None:
        return self.surgery.name if self.surgery else None

    def __repr__(self) -> str:
        return f"<SurgicalRecord(id={self.id}, status={self.status}, revision={self.revision})>"


class RecordStep(Base, IDMixin):
    """Checklist step embedded in a record, confirmed by resident and teacher."""

    __tablename__ = "record_steps"

    record_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    resident_done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    teacher_done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    score: Mapped[StepScore] = mapped_column(
        Enum(StepScore),
        default=StepScore.A,
        nullable=False,
    )

    record: Mapped["SurgicalRecord"] = relationship("SurgicalRecord", back_populates="steps")

    @validates("name")
    def validate_name(self, key: str, value: str | None) -> str:
        value = (value or "").strip()
        if not value:
            raise ValidationError("Step name is required", details={"field": key})
        if self.name is not None and self.name != value:
            raise ValidationError(
                "Step names are fixed once the record is created",
                details={"field": key, "name": self.name},
            )
        return value

    @validates("score")
    def validate_score(self, key: str, value: Any) -> StepScore:
        return _coerce_enum(StepScore, key, value)

    def __repr__(self) -> str:
        return f"<RecordStep(position={self.position}, name={self.name})>"


class RecordOsat(Base, IDMixin):
    """OSAT rubric evaluation embedded in a record."""

    __tablename__ = "record_osats"

    record_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item: Mapped[str] = mapped_column(String(255), nullable=False)
    scale: Mapped[list] = mapped_column(JSONType, nullable=False)
    obtained: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    record: Mapped["SurgicalRecord"] = relationship("SurgicalRecord", back_populates="osats")

    @validates("item")
    def validate_item(self, key: str, value: str | None) -> str:
        value = (value or "").strip()
        if not value:
            raise ValidationError("OSAT item is required", details={"field": key})
        return value

    @validates("scale")
    def validate_scale(self, key: str, value: list | None) -> list[dict]:
        if not value:
            raise ValidationError("OSAT scale must not be empty", details={"field": key})
        try:
            points = [OsatScalePoint.model_validate(point) for point in value]
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid OSAT scale",
                details={
                    "field": key,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            )
        return [point.model_dump() for point in points]

    @property
    def scale_points(self) -> list[OsatScalePoint]:
        return [OsatScalePoint.model_validate(point) for point in self.scale or []]

    def __repr__(self) -> str:
        return f"<RecordOsat(position={self.position}, item={self.item})>"


# Import to avoid circular imports
from app.models.surgery import Surgery  # noqa: E402
