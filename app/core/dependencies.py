"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header

from app.core.database import DbSession
from app.core.exceptions import AuthenticationError, ForbiddenError
from app.core.security import verify_access_token
from app.schemas.auth import Actor, ActorRole
from app.services.analytics import RecordAnalyticsService
from app.services.lifecycle import RecordLifecycleService
from app.services.repository import RecordRepository, SurgeryTemplateProvider


def get_current_actor(
    authorization: str | None = Header(None, description="Bearer token"),
) -> Actor:
    """Extract the caller's identity and role from the JWT token."""
    if not authorization:
        raise AuthenticationError("Missing authorization header")
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization[7:]  # Remove "Bearer " prefix
    payload = verify_access_token(token)

    if not payload:
        raise AuthenticationError("Invalid or expired token")

    actor_id_str = payload.get("sub")
    if not actor_id_str:
        raise AuthenticationError("Invalid token payload")

    try:
        actor_id = int(actor_id_str)
    except ValueError:
        raise AuthenticationError("Invalid actor ID in token")

    try:
        role = ActorRole(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Invalid role in token")

    return Actor(actor_id=actor_id, role=role)


def require_role(*roles: ActorRole):
    """Dependency factory that requires one of the given roles."""

    def check_role(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if actor.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise ForbiddenError(f"Role must be one of: {allowed}")
        return actor

    return check_role


def get_lifecycle_service(
    db: DbSession,
) -> RecordLifecycleService:
    return RecordLifecycleService(
        repository=RecordRepository(db),
        templates=SurgeryTemplateProvider(db),
    )


def get_analytics_service(
    db: DbSession,
) -> RecordAnalyticsService:
    return RecordAnalyticsService(RecordRepository(db))


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
LifecycleService = Annotated[RecordLifecycleService, Depends(get_lifecycle_service)]
AnalyticsService = Annotated[RecordAnalyticsService, Depends(get_analytics_service)]
