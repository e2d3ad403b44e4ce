import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.classification import HistoryClearance, HistoryView
from app.schemas.classification import HistoryClearanceCreate
from app.services.audit import audit_events, snapshot
from app.services.common import atomic
from app.services.scope import Actor, resolve_congregation

logger = logging.getLogger(__name__)


class HistoryClearances:
    """Markers that hide older rows from a report list without deleting them."""

    @staticmethod
    def clear(
        db: Session,
        payload: HistoryClearanceCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> HistoryClearance:
        now = now or datetime.now(timezone.utc)
        district_code, local_code = resolve_congregation(
            actor, payload.district_code, payload.local_code
        )
        with atomic(db, "clear_history"):
            clearance = HistoryClearance(
                district_code=district_code,
                local_code=local_code,
                view=payload.view,
                cleared_at=now,
                cleared_by=actor.id,
            )
            db.add(clearance)
            db.flush()
            audit_events.record(
                db,
                actor,
                "clear_history",
                "history_clearances",
                clearance.id,
                after=snapshot(clearance),
            )
        logger.info(
            "Cleared %s history for %s/%s", payload.view.value, district_code, local_code
        )
        return clearance

    @staticmethod
    def latest_marker(district_code: str, local_code: str, view: HistoryView):
        """Scalar subquery for the newest marker; NULL when the view was never cleared."""
        return (
            select(func.max(HistoryClearance.cleared_at))
            .where(
                HistoryClearance.district_code == district_code,
                HistoryClearance.local_code == local_code,
                HistoryClearance.view == view,
            )
            .scalar_subquery()
        )


history_clearances = HistoryClearances()
