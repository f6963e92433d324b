"""Scoring rules for record steps and OSAT rubric values.

All functions here are pure. Steps only need ``resident_done``,
``teacher_done`` and ``score``; scale points only need ``punctuation``.
The lifecycle service and the analytics projections both score through
this module.
"""

from collections.abc import Sequence

from app.core.exceptions import ValidationError
from app.models.record import RecordStep, StepScore
from app.schemas.surgery import OsatScalePoint


FULL_CREDIT = 1.0
HALF_CREDIT = 0.5
NO_CREDIT = 0.0


def step_weight(step: RecordStep) -> float:
    """Credit for one step: 1, 0.5 (confirmed with score 'b') or 0.

    Credit requires both the resident and the teacher to mark the step done.
    """
    if not (step.resident_done and step.teacher_done):
        return NO_CREDIT
    if StepScore(step.score) == StepScore.B:
        return HALF_CREDIT
    return FULL_CREDIT


def percent_completed(steps: Sequence[RecordStep]) -> int:
    """Weighted share of completed steps, rounded to an integer 0..100."""
    if not steps:
        return 0
    total = sum(step_weight(step) for step in steps)
    # round-half-up, so 2.5 -> 3 rather than banker's rounding
    return int(total / len(steps) * 100 + 0.5)


def osat_bounds(scale: Sequence[OsatScalePoint]) -> tuple[int, int]:
    """Lowest and highest punctuation of an OSAT scale."""
    if not scale:
        raise ValidationError("OSAT scale must not be empty")
    values = [point.punctuation for point in scale]
    return min(values), max(values)


def validate_osat(obtained: int, scale: Sequence[OsatScalePoint], item: str | None = None) -> None:
    """Raise ValidationError unless ``obtained`` lies within the scale bounds."""
    low, high = osat_bounds(scale)
    if not low <= obtained <= high:
        details = {"obtained": obtained, "min": low, "max": high}
        if item is not None:
            details["item"] = item
        raise ValidationError(
            f"OSAT score {obtained} is outside the scale [{low}, {high}]",
            details=details,
        )
