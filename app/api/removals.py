from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.models.registry import RemovalCode, RemovalRequestStatus
from app.schemas.common import ListResponse
from app.schemas.removal import (
    RemovalCreate,
    RemovalRead,
    RemovalRequestAction,
    RemovalRequestCreate,
    RemovalRequestRead,
)
from app.services import removals as removal_service
from app.services.scope import Actor, require_scope, resolve_listing_scope

router = APIRouter(tags=["removals"])


# ------------------------------------------------------------------
# Removals
# ------------------------------------------------------------------


@router.post(
    "/removals",
    response_model=RemovalRead,
    status_code=status.HTTP_201_CREATED,
)
def remove_officer(
    payload: RemovalCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRead:
    return removal_service.removals.remove_officer(db, payload, actor)


@router.get("/removals", response_model=ListResponse[RemovalRead])
def list_removals(
    district_code: str | None = None,
    local_code: str | None = None,
    removal_code: RemovalCode | None = None,
    week: int | None = Query(default=None, ge=1, le=53),
    year: int | None = None,
    order_by: str = Query(default="removal_date"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_listing_scope(
        actor, district_code, local_code, district_required=True
    )
    return removal_service.removals.list_response(
        db,
        district_code,
        local_code,
        removal_code,
        week,
        year,
        order_by,
        order_dir,
        limit,
        offset,
    )


# ------------------------------------------------------------------
# Removal requests
# ------------------------------------------------------------------


@router.post(
    "/removal-requests",
    response_model=RemovalRequestRead,
    status_code=status.HTTP_201_CREATED,
)
def deliberate_removal(
    payload: RemovalRequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRequestRead:
    return removal_service.removal_requests.deliberate(db, payload, actor)


@router.get("/removal-requests/{request_id}", response_model=RemovalRequestRead)
def get_removal_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRequestRead:
    request = removal_service.removal_requests.get(db, request_id)
    require_scope(actor, request.officer.district_code, request.officer.local_code)
    return request


@router.get("/removal-requests", response_model=ListResponse[RemovalRequestRead])
def list_removal_requests(
    district_code: str | None = None,
    local_code: str | None = None,
    request_status: RemovalRequestStatus | None = Query(default=None, alias="status"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_listing_scope(
        actor, district_code, local_code, district_required=True
    )
    return removal_service.removal_requests.list_response(
        db, district_code, local_code, request_status, order_by, order_dir, limit, offset
    )


@router.post("/removal-requests/{request_id}/submit", response_model=RemovalRequestRead)
def submit_removal_request(
    request_id: str,
    payload: RemovalRequestAction | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRequestRead:
    return removal_service.removal_requests.submit(
        db, request_id, payload.notes if payload else None, actor
    )


@router.post("/removal-requests/{request_id}/approve", response_model=RemovalRequestRead)
def approve_removal_request(
    request_id: str,
    payload: RemovalRequestAction | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRequestRead:
    return removal_service.removal_requests.approve(
        db, request_id, payload.notes if payload else None, actor
    )


@router.post("/removal-requests/{request_id}/cancel", response_model=RemovalRequestRead)
def cancel_removal_request(
    request_id: str,
    payload: RemovalRequestAction | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> RemovalRequestRead:
    return removal_service.removal_requests.cancel(
        db, request_id, payload.notes if payload else None, actor
    )
