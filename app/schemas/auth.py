"""Actor identity schemas."""

import enum

from app.schemas.common import BaseSchema


class ActorRole(str, enum.Enum):
    """Role of the authenticated caller."""

    RESIDENT = "resident"
    TEACHER = "teacher"
    ADMIN = "admin"


class Actor(BaseSchema):
    """Role-authenticated caller supplied by the identity provider."""

    actor_id: int
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_resident(self) -> bool:
        return self.role == ActorRole.RESIDENT

    @property
    def is_teacher(self) -> bool:
        return self.role == ActorRole.TEACHER
