from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.errors import AuthorizationError
from app.schemas.audit import AuditEntryRead
from app.schemas.common import ListResponse
from app.services import audit as audit_service
from app.services.scope import Actor, ActorRole

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=ListResponse[AuditEntryRead])
def list_audit_entries(
    table_name: str | None = None,
    record_id: str | None = None,
    actor_id: str | None = None,
    action: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> dict:
    if actor.role != ActorRole.admin:
        raise AuthorizationError("Only administrators may read the audit trail")
    return audit_service.audit_events.list_response(
        db, table_name, record_id, actor_id, action, order_by, order_dir, limit, offset
    )
