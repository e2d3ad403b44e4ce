from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.models.registry import OfficerStatus
from app.schemas.common import ListResponse
from app.schemas.officer import (
    BirthdateUpdate,
    DepartmentAssignmentRead,
    DepartmentInput,
    MergeRequest,
    MergeResult,
    OfficerCreate,
    OfficerRead,
)
from app.services import officers as officer_service
from app.services.scope import Actor, require_scope, resolve_listing_scope

router = APIRouter(prefix="/officers", tags=["officers"])


@router.post("", response_model=OfficerRead, status_code=status.HTTP_201_CREATED)
def intake_officer(
    payload: OfficerCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    officer = officer_service.officer_records.intake(db, payload, actor)
    return officer_service.officer_records.display(officer)


@router.get("/search/registry-number", response_model=list[OfficerRead])
def search_registry_number(
    registry_number: str = Query(min_length=1),
    district_code: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[dict]:
    district_code, _ = resolve_listing_scope(
        actor, district_code, None, district_required=True
    )
    found = officer_service.officer_records.find_by_registry_number(
        db, district_code, registry_number
    )
    return [
        officer_service.officer_records.display(officer)
        for officer in found
        if actor.has_scope(officer.district_code, officer.local_code)
    ]


@router.get("/{officer_id}", response_model=OfficerRead)
def get_officer(
    officer_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    officer = officer_service.officer_records.get(db, officer_id)
    require_scope(actor, officer.district_code, officer.local_code)
    return officer_service.officer_records.display(officer)


@router.get("", response_model=ListResponse[OfficerRead])
def list_officers(
    district_code: str | None = None,
    local_code: str | None = None,
    officer_status: OfficerStatus | None = Query(default=None, alias="status"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_listing_scope(actor, district_code, local_code)
    response = officer_service.officer_records.list_response(
        db, district_code, local_code, officer_status, order_by, order_dir, limit, offset
    )
    response["items"] = [
        officer_service.officer_records.display(officer) for officer in response["items"]
    ]
    return response


@router.put("/{officer_id}/birthdate", response_model=OfficerRead)
def update_birthdate(
    officer_id: str,
    payload: BirthdateUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    officer = officer_service.officer_records.update_birthdate(
        db, officer_id, payload.birthdate, actor
    )
    return officer_service.officer_records.display(officer)


@router.post("/{officer_id}/merge", response_model=MergeResult)
def merge_officers(
    officer_id: str,
    payload: MergeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    primary, merged = officer_service.officer_records.merge(
        db, officer_id, payload.duplicate_ids, actor
    )
    return {"primary_id": primary.id, "merged_count": merged}


@router.post(
    "/{officer_id}/departments",
    response_model=DepartmentAssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def assign_department(
    officer_id: str,
    payload: DepartmentInput,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return officer_service.officer_records.assign_department(
        db, officer_id, payload, actor
    )
