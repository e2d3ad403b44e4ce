import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import case, func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.errors import StorageFailure
from app.models.registry import Headcount, Officer, OfficerStatus
from app.services.common import apply_ordering, apply_pagination
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise StorageFailure(f"Headcount upsert is not supported on {dialect}")
    return insert


class Headcounts(ListResponseMixin):
    """Per-congregation counters, written inside the caller's transaction."""

    @staticmethod
    def increment(
        db: Session, district_code: str, local_code: str, now: datetime | None = None
    ) -> None:
        now = now or datetime.now(timezone.utc)
        stmt = _insert_for(db)(Headcount).values(
            id=uuid.uuid4(),
            district_code=district_code,
            local_code=local_code,
            total_count=1,
            last_updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Headcount.district_code, Headcount.local_code],
            set_={
                "total_count": Headcount.total_count + 1,
                "last_updated": now,
            },
        )
        db.execute(stmt)

    @staticmethod
    def decrement(
        db: Session, district_code: str, local_code: str, now: datetime | None = None
    ) -> None:
        now = now or datetime.now(timezone.utc)
        current = Headcounts.get(db, district_code, local_code)
        if current <= 0:
            # Drift between the counter and the officer rows; clamp instead of failing
            logger.warning(
                "Headcount for %s/%s is already zero; clamping decrement",
                district_code,
                local_code,
            )
        db.execute(
            update(Headcount)
            .where(
                Headcount.district_code == district_code,
                Headcount.local_code == local_code,
            )
            .values(
                total_count=case(
                    (Headcount.total_count > 0, Headcount.total_count - 1),
                    else_=0,
                ),
                last_updated=now,
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def get(db: Session, district_code: str, local_code: str) -> int:
        total = (
            db.query(Headcount.total_count)
            .filter(
                Headcount.district_code == district_code,
                Headcount.local_code == local_code,
            )
            .scalar()
        )
        return total or 0

    @staticmethod
    def get_row(db: Session, district_code: str, local_code: str) -> Headcount | None:
        return (
            db.query(Headcount)
            .filter(
                Headcount.district_code == district_code,
                Headcount.local_code == local_code,
            )
            .populate_existing()
            .first()
        )

    @staticmethod
    def list(
        db: Session,
        district_code: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Headcount]:
        query = db.query(Headcount).populate_existing()
        if district_code is not None:
            query = query.filter(Headcount.district_code == district_code)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "local_code": Headcount.local_code,
                "total_count": Headcount.total_count,
                "last_updated": Headcount.last_updated,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def live_count(db: Session, district_code: str, local_code: str) -> int:
        """Count active officers directly; the counter must always equal this."""
        return (
            db.query(func.count(Officer.id))
            .filter(
                Officer.district_code == district_code,
                Officer.local_code == local_code,
                Officer.status == OfficerStatus.active,
            )
            .scalar()
        )


headcounts = Headcounts()
