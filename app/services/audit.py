import enum
import logging
import uuid
from datetime import date, datetime

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from app.models.audit import AuditEntry
from app.services.common import apply_ordering, apply_pagination
from app.services.response import ListResponseMixin
from app.services.scope import Actor

logger = logging.getLogger(__name__)


def _jsonable(value):
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def snapshot(instance) -> dict:
    """Column values of a mapped row; encrypted columns stay as ciphertext."""
    mapper = inspect(instance).mapper
    return {
        attr.key: _jsonable(getattr(instance, attr.key)) for attr in mapper.column_attrs
    }


class AuditEvents(ListResponseMixin):
    @staticmethod
    def record(
        db: Session,
        actor: Actor,
        action: str,
        table_name: str,
        record_id: str | uuid.UUID,
        before: dict | None = None,
        after: dict | None = None,
    ) -> AuditEntry:
        """Add an entry to the caller's transaction; the caller commits."""
        entry = AuditEntry(
            actor_id=actor.id,
            action=action,
            table_name=table_name,
            record_id=str(record_id),
            before=before,
            after=after,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
        db.add(entry)
        return entry

    @staticmethod
    def list(
        db: Session,
        table_name: str | None,
        record_id: str | None,
        actor_id: str | None,
        action: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[AuditEntry]:
        stmt = select(AuditEntry)
        if table_name is not None:
            stmt = stmt.where(AuditEntry.table_name == table_name)
        if record_id is not None:
            stmt = stmt.where(AuditEntry.record_id == record_id)
        if actor_id is not None:
            stmt = stmt.where(AuditEntry.actor_id == actor_id)
        if action is not None:
            stmt = stmt.where(AuditEntry.action == action)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": AuditEntry.created_at, "action": AuditEntry.action},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


audit_events = AuditEvents()
