"""Surgery model - source of record step and OSAT templates."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, JSONType, TimestampMixin


class Surgery(Base, IDMixin, TimestampMixin):
    """Surgery procedure with its checklist steps and OSAT rubric."""

    __tablename__ = "surgeries"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    area: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ["Incision", "Dissection", ...]
    steps: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    # [{"item": "...", "scale": [{"punctuation": 1, "description": "..."}]}]
    osats: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Relationships
    records: Mapped[list["SurgicalRecord"]] = relationship(
        "SurgicalRecord",
        back_populates="surgery",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Surgery(id={self.id}, name={self.name})>"
