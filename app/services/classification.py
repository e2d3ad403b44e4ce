"""Cohort classification: auto labels, manual overrides, baselines and deltas.

The auto label is derived from age (and marriage, which always means adult).
A manual override wins while set; clearing it falls back to the auto label.
Baselines are insert-only rows; the most recent row for a congregation,
classification scope and period is the start of that delta window.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DecryptionFailure, ValidationError
from app.metrics import DECRYPTION_FAILURES
from app.models.classification import (
    BaselinePeriod,
    BaselineScope,
    ClassificationBaseline,
    ClassificationChange,
    HistoryView,
)
from app.models.registry import Classification, Officer, OfficerStatus
from app.schemas.classification import BaselineResetRequest, ManualClassificationUpdate
from app.services.audit import audit_events, snapshot
from app.services.common import apply_pagination, atomic, lock_officer
from app.services.field_cipher import PLACEHOLDER, get_cipher
from app.services.history import history_clearances
from app.services.response import ListResponseMixin
from app.services.scope import Actor, require_scope, resolve_congregation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Age rules
# ---------------------------------------------------------------------------


def age_on(birthdate: date, today: date) -> int:
    return today.year - birthdate.year - (
        (today.month, today.day) < (birthdate.month, birthdate.day)
    )


def add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 birthday in a non-leap year
        return value.replace(year=value.year + years, month=3, day=1)


def auto_classification(
    birthdate: date | None, marriage_date: date | None, today: date
) -> Classification | None:
    if marriage_date is not None:
        return Classification.adult
    if birthdate is None:
        return None
    age = age_on(birthdate, today)
    if age < settings.youth_min_age:
        return Classification.child
    if age < settings.adult_min_age:
        return Classification.youth
    return Classification.adult


def parse_birthdate(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid birthdate: {value}")


def _effective_is(classification: Classification):
    return or_(
        Officer.classification_manual == classification,
        and_(
            Officer.classification_manual.is_(None),
            Officer.classification_auto == classification,
        ),
    )


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Classifications
# ---------------------------------------------------------------------------


class Classifications(ListResponseMixin):
    @staticmethod
    def recompute(officer: Officer, today: date | None = None) -> Classification | None:
        """Refresh the auto label from the stored (encrypted) birthdate.

        An unreadable birthdate leaves the current label in place.
        """
        today = today or date.today()
        try:
            plaintext = get_cipher().decrypt(officer.birthdate, officer.district_code)
        except DecryptionFailure:
            DECRYPTION_FAILURES.inc()
            logger.warning(
                "Kept classification of officer %s: birthdate is unreadable", officer.id
            )
            return officer.classification_auto
        officer.classification_auto = auto_classification(
            parse_birthdate(plaintext), officer.marriage_date, today
        )
        return officer.classification_auto

    @staticmethod
    def effective(officer: Officer) -> Classification | None:
        return officer.effective_classification

    @staticmethod
    def set_manual(
        db: Session,
        officer_id: str,
        payload: ManualClassificationUpdate,
        actor: Actor,
        now: datetime | None = None,
    ) -> Officer:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "set_manual_classification"):
            officer = lock_officer(db, officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            before = snapshot(officer)
            previous = officer.effective_classification
            officer.classification_manual = payload.classification
            db.add(
                ClassificationChange(
                    officer_id=officer.id,
                    district_code=officer.district_code,
                    local_code=officer.local_code,
                    previous_classification=previous,
                    new_classification=officer.effective_classification,
                    auto_classification=officer.classification_auto,
                    reason=payload.reason,
                    changed_by=actor.id,
                    changed_at=now,
                )
            )
            db.flush()
            audit_events.record(
                db,
                actor,
                "set_manual_classification",
                "officers",
                officer.id,
                before=before,
                after=snapshot(officer),
            )
        logger.info(
            "Set manual classification of officer %s to %s",
            officer.id,
            payload.classification.value if payload.classification else None,
        )
        return officer

    @staticmethod
    def reset_baseline(
        db: Session,
        payload: BaselineResetRequest,
        actor: Actor,
        now: datetime | None = None,
    ) -> list[ClassificationBaseline]:
        """Start new delta windows; officer and ledger rows are left untouched."""
        now = now or datetime.now(timezone.utc)
        district_code, local_code = resolve_congregation(
            actor, payload.district_code, payload.local_code
        )
        if payload.period == "both":
            periods = [BaselinePeriod.week, BaselinePeriod.month]
        else:
            periods = [BaselinePeriod(payload.period)]

        with atomic(db, "reset_classification_baseline"):
            baselines = [
                ClassificationBaseline(
                    district_code=district_code,
                    local_code=local_code,
                    classification=payload.classification,
                    period=period,
                    reset_at=now,
                    reset_by=actor.id,
                )
                for period in periods
            ]
            db.add_all(baselines)
            db.flush()
            for baseline in baselines:
                audit_events.record(
                    db,
                    actor,
                    "reset_classification_baseline",
                    "classification_baselines",
                    baseline.id,
                    after=snapshot(baseline),
                )
        logger.info(
            "Reset %s baseline for %s/%s (%s)",
            payload.classification.value,
            district_code,
            local_code,
            payload.period,
        )
        return baselines

    @staticmethod
    def resolve_baseline(
        db: Session,
        district_code: str,
        local_code: str,
        classification: Classification,
        period: BaselinePeriod,
        now: datetime | None = None,
    ) -> tuple[datetime, str]:
        """Classification-specific reset, else the "all" reset, else a rolling window."""
        now = now or datetime.now(timezone.utc)
        for scope, source in (
            (BaselineScope(classification.value), "classification"),
            (BaselineScope.all, "all"),
        ):
            reset_at = (
                db.query(func.max(ClassificationBaseline.reset_at))
                .filter(
                    ClassificationBaseline.district_code == district_code,
                    ClassificationBaseline.local_code == local_code,
                    ClassificationBaseline.classification == scope,
                    ClassificationBaseline.period == period,
                )
                .scalar()
            )
            if reset_at is not None:
                return _aware(reset_at), source
        days = (
            settings.delta_week_days
            if period == BaselinePeriod.week
            else settings.delta_month_days
        )
        return now - timedelta(days=days), "default"

    @staticmethod
    def delta(
        db: Session,
        district_code: str,
        local_code: str,
        classification: Classification,
        period: BaselinePeriod,
        now: datetime | None = None,
    ) -> dict:
        baseline, source = Classifications.resolve_baseline(
            db, district_code, local_code, classification, period, now
        )
        congregation = (
            Officer.district_code == district_code,
            Officer.local_code == local_code,
            _effective_is(classification),
        )
        added = (
            db.query(func.count(Officer.id))
            .filter(
                *congregation,
                Officer.status == OfficerStatus.active,
                Officer.created_at >= baseline,
            )
            .scalar()
        )
        removed = (
            db.query(func.count(Officer.id))
            .filter(
                *congregation,
                Officer.status == OfficerStatus.transferred_out,
                or_(
                    and_(
                        Officer.transfer_out_date.isnot(None),
                        Officer.transfer_out_date >= baseline.date(),
                    ),
                    and_(
                        Officer.transfer_out_date.is_(None),
                        Officer.updated_at >= baseline,
                    ),
                ),
            )
            .scalar()
        )
        return {
            "classification": classification,
            "period": period,
            "baseline_at": baseline,
            "baseline_source": source,
            "added": added,
            "removed": removed,
            "net": added - removed,
        }

    @staticmethod
    def changes(
        db: Session,
        district_code: str,
        local_code: str,
        limit: int,
        offset: int,
    ) -> list[ClassificationChange]:
        marker = history_clearances.latest_marker(
            district_code, local_code, HistoryView.classification_changes
        )
        query = db.query(ClassificationChange).filter(
            ClassificationChange.district_code == district_code,
            ClassificationChange.local_code == local_code,
            or_(marker.is_(None), ClassificationChange.changed_at > marker),
        )
        query = query.order_by(ClassificationChange.changed_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def upcoming_promotions(
        db: Session,
        district_code: str,
        local_code: str,
        within_days: int | None = None,
        today: date | None = None,
    ) -> list[dict]:
        """Active officers who reach the youth threshold within the window."""
        today = today or date.today()
        if within_days is None:
            within_days = settings.promotion_window_days
        if within_days < 0:
            raise ValidationError("within_days must not be negative")

        cipher = get_cipher()
        officers = db.scalars(
            select(Officer).where(
                Officer.district_code == district_code,
                Officer.local_code == local_code,
                Officer.status == OfficerStatus.active,
                or_(
                    Officer.classification_manual.is_(None),
                    Officer.classification_manual == Classification.child,
                ),
            )
        ).all()

        upcoming = []
        for officer in officers:
            plaintext = cipher.decrypt_or_placeholder(
                officer.birthdate, officer.district_code
            )
            if plaintext is None or plaintext == PLACEHOLDER:
                continue
            birthdate = parse_birthdate(plaintext)
            if age_on(birthdate, today) >= settings.youth_min_age:
                continue
            promotion_date = add_years(birthdate, settings.youth_min_age)
            days_until = (promotion_date - today).days
            if days_until > within_days:
                continue
            upcoming.append(
                {
                    "officer_id": officer.id,
                    "ref_no": officer.ref_no,
                    "full_name": _full_name(cipher, officer),
                    "birthdate": birthdate,
                    "age": age_on(birthdate, today),
                    "promotion_date": promotion_date,
                    "days_until": days_until,
                }
            )
        upcoming.sort(key=lambda row: row["days_until"])
        return upcoming


def _full_name(cipher, officer: Officer) -> str:
    parts = [
        cipher.decrypt_or_placeholder(officer.first_name, officer.district_code),
        cipher.decrypt_or_placeholder(officer.middle_initial, officer.district_code),
        cipher.decrypt_or_placeholder(officer.last_name, officer.district_code),
    ]
    return " ".join(part for part in parts if part)


classifications = Classifications()
