from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas.classification import HistoryClearanceCreate, HistoryClearanceRead
from app.services.history import history_clearances
from app.services.scope import Actor

router = APIRouter(prefix="/history-clearances", tags=["history"])


@router.post(
    "",
    response_model=HistoryClearanceRead,
    status_code=status.HTTP_201_CREATED,
)
def clear_history_view(
    payload: HistoryClearanceCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> HistoryClearanceRead:
    return history_clearances.clear(db, payload, actor)
