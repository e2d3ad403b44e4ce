from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas.common import ListResponse
from app.schemas.headcount import HeadcountRead
from app.services.headcount import headcounts
from app.services.scope import Actor, require_scope, resolve_listing_scope

router = APIRouter(prefix="/headcount", tags=["headcount"])


@router.get("/{district_code}/{local_code}", response_model=HeadcountRead)
def get_headcount(
    district_code: str,
    local_code: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    require_scope(actor, district_code, local_code)
    row = headcounts.get_row(db, district_code, local_code)
    return {
        "district_code": district_code,
        "local_code": local_code,
        "total_count": row.total_count if row else 0,
        "last_updated": row.last_updated if row else None,
    }


@router.get("", response_model=ListResponse[HeadcountRead])
def list_headcounts(
    district_code: str | None = None,
    order_by: str = Query(default="local_code"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_listing_scope(actor, district_code, None)
    response = headcounts.list_response(
        db, district_code, order_by, order_dir, limit, offset
    )
    if local_code is not None:
        response["items"] = [
            row for row in response["items"] if row.local_code == local_code
        ]
        response["count"] = len(response["items"])
    return response
