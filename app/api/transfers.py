from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.models.registry import TransferDirection
from app.schemas.common import ListResponse
from app.schemas.transfer import (
    TransferInRequest,
    TransferInResult,
    TransferOutRequest,
    TransferRead,
    WeeklySummaryRow,
)
from app.services import transfers as transfer_service
from app.services.common import week_bucket
from app.services.headcount import headcounts
from app.services.scope import (
    Actor,
    ActorRole,
    resolve_congregation,
    resolve_listing_scope,
)

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.post("/in", response_model=TransferInResult, status_code=status.HTTP_201_CREATED)
def transfer_in(
    payload: TransferInRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    officer = transfer_service.transfers.transfer_in(db, payload, actor)
    return {
        "officer_id": officer.id,
        "ref_no": officer.ref_no,
        "transfer": officer.transfers[0],
        "headcount": headcounts.get(db, officer.district_code, officer.local_code),
    }


@router.post("/out", response_model=TransferRead, status_code=status.HTTP_201_CREATED)
def transfer_out(
    payload: TransferOutRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> TransferRead:
    return transfer_service.transfers.transfer_out(db, payload, actor)


@router.get("", response_model=ListResponse[TransferRead])
def list_transfers(
    district_code: str | None = None,
    local_code: str | None = None,
    direction: TransferDirection | None = None,
    week: int | None = Query(default=None, ge=1, le=53),
    year: int | None = None,
    order_by: str = Query(default="transfer_date"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_listing_scope(
        actor, district_code, local_code, district_required=True
    )
    return transfer_service.transfers.list_response(
        db,
        district_code,
        local_code,
        direction,
        week,
        year,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/weekly-summary", response_model=list[WeeklySummaryRow])
def weekly_summary(
    district_code: str | None = None,
    week: int | None = Query(default=None, ge=1, le=53),
    year: int | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[dict]:
    district_code, _ = resolve_listing_scope(
        actor, district_code, None, district_required=True
    )
    current_week, current_year = week_bucket(date.today())
    rows = transfer_service.transfers.weekly_summary(
        db, district_code, week or current_week, year or current_year
    )
    if actor.role == ActorRole.local:
        rows = [row for row in rows if row["local_code"] == actor.local_code]
    return rows


@router.get("/out-history", response_model=ListResponse[TransferRead])
def transfer_out_history(
    district_code: str | None = None,
    local_code: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_congregation(actor, district_code, local_code)
    items = transfer_service.transfers.out_history(
        db, district_code, local_code, limit, offset
    )
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}
