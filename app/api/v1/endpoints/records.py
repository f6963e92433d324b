"""Surgical record endpoints."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app.core.database import DbSession
from app.core.dependencies import CurrentActor, LifecycleService, require_role
from app.models.audit import AuditAction
from app.models.record import RecordStatus
from app.schemas.auth import Actor, ActorRole
from app.schemas.common import ErrorResponse
from app.schemas.record import (
    CancelRequest,
    RecordCreate,
    RecordListItem,
    RecordResponse,
    ReviewRequest,
    SelfAssessmentRequest,
)
from app.services.audit import audit_record_change
from app.services.export import RecordExportService

router = APIRouter(
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("", response_model=RecordResponse, status_code=201)
def create_record(
    request: RecordCreate,
    actor: Annotated[Actor, Depends(require_role(ActorRole.RESIDENT, ActorRole.ADMIN))],
    service: LifecycleService,
    db: DbSession,
    http_request: Request,
):
    """
    Create a pending record from the surgery's step and OSAT templates.
    Residents create their own records; admins must pass resident_id.
    """
    record = service.create_record(actor, request)
    audit_record_change(
        db, AuditAction.RECORD_CREATED, record, actor, ip_address=_client_ip(http_request)
    )
    return RecordResponse.model_validate(record)


@router.get("", response_model=list[RecordListItem])
def list_records(
    actor: CurrentActor,
    service: LifecycleService,
    status: list[RecordStatus] | None = Query(None),
    surgery_id: int | None = None,
    include_deleted: bool = False,
):
    """
    List the caller's records (as resident or teacher), newest first.
    Admins see every record.
    """
    records = service.list_records(
        actor,
        statuses=frozenset(status) if status else None,
        surgery_id=surgery_id,
        include_deleted=include_deleted,
    )
    return [RecordListItem.model_validate(r) for r in records]


@router.get("/export")
def export_records(
    actor: CurrentActor,
    service: LifecycleService,
):
    """Download the caller's records as an Excel workbook."""
    records = service.list_records(actor)
    content = RecordExportService().export_records(records)
    filename = f"records-{actor.role.value}.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{record_id}", response_model=RecordResponse)
def get_record(
    record_id: int,
    actor: CurrentActor,
    service: LifecycleService,
):
    """Get a single record visible to the caller."""
    return RecordResponse.model_validate(service.get_record(record_id, actor))


@router.post("/{record_id}/self-assessment", response_model=RecordResponse)
def submit_self_assessment(
    record_id: int,
    request: SelfAssessmentRequest,
    actor: CurrentActor,
    service: LifecycleService,
    db: DbSession,
    http_request: Request,
):
    """
    Resident self-assessment: pending -> corrected.
    Fails with 409 CONFLICT if `revision` is stale.
    """
    record = service.submit_self_assessment(record_id, actor, request)
    audit_record_change(
        db,
        AuditAction.RECORD_SELF_ASSESSED,
        record,
        actor,
        previous_status=RecordStatus.PENDING.value,
        ip_address=_client_ip(http_request),
    )
    return RecordResponse.model_validate(record)


@router.post("/{record_id}/review", response_model=RecordResponse)
def submit_review(
    record_id: int,
    request: ReviewRequest,
    actor: CurrentActor,
    service: LifecycleService,
    db: DbSession,
    http_request: Request,
):
    """
    Teacher review: corrected -> reviewed.
    Fails with 409 CONFLICT if `revision` is stale.
    """
    record = service.submit_review(record_id, actor, request)
    audit_record_change(
        db,
        AuditAction.RECORD_REVIEWED,
        record,
        actor,
        previous_status=RecordStatus.CORRECTED.value,
        ip_address=_client_ip(http_request),
    )
    return RecordResponse.model_validate(record)


@router.post("/{record_id}/cancel", response_model=RecordResponse)
def cancel_record(
    record_id: int,
    request: CancelRequest,
    actor: CurrentActor,
    service: LifecycleService,
    db: DbSession,
    http_request: Request,
):
    """Cancel a pending or corrected record. Admin or owning resident."""
    record, previous_status = service.cancel(record_id, actor, request)
    audit_record_change(
        db,
        AuditAction.RECORD_CANCELED,
        record,
        actor,
        previous_status=previous_status.value,
        ip_address=_client_ip(http_request),
    )
    return RecordResponse.model_validate(record)


@router.delete("/{record_id}", response_model=RecordResponse)
def delete_record(
    record_id: int,
    actor: Annotated[Actor, Depends(require_role(ActorRole.ADMIN))],
    service: LifecycleService,
    db: DbSession,
    http_request: Request,
    revision: int = Query(..., description="Revision the caller last read"),
):
    """Soft-delete a record. Admin only."""
    record = service.soft_delete(record_id, actor, revision)
    audit_record_change(
        db,
        AuditAction.RECORD_DELETED,
        record,
        actor,
        ip_address=_client_ip(http_request),
    )
    return RecordResponse.model_validate(record)
