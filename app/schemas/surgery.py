"""Surgery template schemas."""

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema


def _find_duplicates(names: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates = []
    for name in names:
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


class OsatScalePoint(BaseSchema):
    """One anchor point of an OSAT rubric scale."""

    punctuation: int
    description: str | None = None


class OsatTemplate(BaseSchema):
    """OSAT rubric item as defined on a surgery."""

    item: str = Field(..., min_length=1)
    scale: list[OsatScalePoint] = Field(..., min_length=1)


class SurgeryTemplate(BaseSchema):
    """Step and OSAT templates copied into every new record of a surgery.

    Transitions address steps and OSATs by name, so names must be unique
    within a template.
    """

    surgery_id: int
    name: str
    area: str
    steps: list[str]
    osats: list[OsatTemplate]

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: list[str]) -> list[str]:
        v = [name.strip() for name in v]
        if any(not name for name in v):
            raise ValueError("Step names must not be empty")
        duplicates = _find_duplicates(v)
        if duplicates:
            raise ValueError(f"Duplicate step names: {', '.join(duplicates)}")
        return v

    @field_validator("osats")
    @classmethod
    def validate_osats(cls, v: list[OsatTemplate]) -> list[OsatTemplate]:
        duplicates = _find_duplicates([osat.item for osat in v])
        if duplicates:
            raise ValueError(f"Duplicate OSAT items: {', '.join(duplicates)}")
        return v
