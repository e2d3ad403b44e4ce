from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.models.classification import BaselinePeriod
from app.models.registry import Classification
from app.schemas.classification import (
    BaselineRead,
    BaselineResetRequest,
    ClassificationChangeRead,
    ClassificationDelta,
    ManualClassificationUpdate,
    UpcomingPromotion,
)
from app.schemas.common import ListResponse
from app.schemas.officer import OfficerRead
from app.services import classification as classification_service
from app.services.officers import officer_records
from app.services.scope import Actor, resolve_congregation

router = APIRouter(prefix="/classification", tags=["classification"])


@router.put("/officers/{officer_id}", response_model=OfficerRead)
def set_manual_classification(
    officer_id: str,
    payload: ManualClassificationUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    officer = classification_service.classifications.set_manual(
        db, officer_id, payload, actor
    )
    return officer_records.display(officer)


@router.post(
    "/baselines",
    response_model=list[BaselineRead],
    status_code=status.HTTP_201_CREATED,
)
def reset_classification_baseline(
    payload: BaselineResetRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[BaselineRead]:
    return classification_service.classifications.reset_baseline(db, payload, actor)


@router.get("/delta", response_model=ClassificationDelta)
def get_classification_delta(
    classification: Classification,
    period: BaselinePeriod = BaselinePeriod.week,
    district_code: str | None = None,
    local_code: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_congregation(actor, district_code, local_code)
    return classification_service.classifications.delta(
        db, district_code, local_code, classification, period
    )


@router.get("/changes", response_model=ListResponse[ClassificationChangeRead])
def list_classification_changes(
    district_code: str | None = None,
    local_code: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    district_code, local_code = resolve_congregation(actor, district_code, local_code)
    items = classification_service.classifications.changes(
        db, district_code, local_code, limit, offset
    )
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/upcoming-promotions", response_model=list[UpcomingPromotion])
def list_upcoming_promotions(
    district_code: str | None = None,
    local_code: str | None = None,
    within_days: int | None = Query(default=None, ge=0, le=366),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[dict]:
    district_code, local_code = resolve_congregation(actor, district_code, local_code)
    return classification_service.classifications.upcoming_promotions(
        db, district_code, local_code, within_days
    )
