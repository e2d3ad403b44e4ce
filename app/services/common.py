import logging
import uuid
from contextlib import contextmanager
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, RegistryError, StorageFailure, ValidationError
from app.metrics import LIFECYCLE_OPERATIONS, LIFECYCLE_ROLLBACKS
from app.models.registry import Officer

logger = logging.getLogger(__name__)


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid identifier: {value}")


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


def week_bucket(value: date) -> tuple[int, int]:
    """Return the ISO (week, year) bucket used by the periodic reports."""
    iso_year, iso_week, _ = value.isocalendar()
    return iso_week, iso_year


@contextmanager
def atomic(db: Session, operation: str):
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield
        db.commit()
    except RegistryError as exc:
        db.rollback()
        LIFECYCLE_ROLLBACKS.labels(operation=operation).inc()
        logger.warning("Rolled back %s: %s", operation, exc)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        LIFECYCLE_ROLLBACKS.labels(operation=operation).inc()
        logger.exception("Rolled back %s", operation)
        raise StorageFailure(f"{operation} could not be committed") from exc
    except Exception:
        db.rollback()
        LIFECYCLE_ROLLBACKS.labels(operation=operation).inc()
        logger.exception("Rolled back %s", operation)
        raise
    LIFECYCLE_OPERATIONS.labels(operation=operation).inc()


def lock_officer(db: Session, officer_id) -> Officer:
    """Re-read the officer inside the current transaction, holding its row lock."""
    officer = (
        db.query(Officer)
        .filter(Officer.id == coerce_uuid(officer_id))
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not officer:
        raise NotFoundError("Officer not found", details={"officer_id": str(officer_id)})
    return officer
