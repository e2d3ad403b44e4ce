from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.errors import ConsistencyViolation, ValidationError
from app.models.classification import HistoryView
from app.models.registry import Officer, OfficerStatus, Transfer, TransferDirection
from app.schemas.officer import DepartmentInput
from app.schemas.transfer import TransferInRequest, TransferOutRequest
from app.services.audit import audit_events, snapshot
from app.services.classification import classifications
from app.services.common import (
    apply_ordering,
    apply_pagination,
    atomic,
    lock_officer,
    week_bucket,
)
from app.services.headcount import headcounts
from app.services.history import history_clearances
from app.services.officers import officer_records, validate_officer_fields
from app.services.removals import cancel_open_requests
from app.services.response import ListResponseMixin
from app.services.scope import Actor, require_scope

logger = logging.getLogger(__name__)


def _congregation_filter(district_code: str, local_code: str | None):
    """Rows where the congregation is the receiving side (in) or the sending side (out)."""
    incoming = [
        Transfer.direction == TransferDirection.transfer_in,
        Transfer.to_district == district_code,
    ]
    outgoing = [
        Transfer.direction == TransferDirection.transfer_out,
        Transfer.from_district == district_code,
    ]
    if local_code is not None:
        incoming.append(Transfer.to_local == local_code)
        outgoing.append(Transfer.from_local == local_code)
    return or_(and_(*incoming), and_(*outgoing))


class Transfers(ListResponseMixin):
    @staticmethod
    def transfer_in(
        db: Session,
        payload: TransferInRequest,
        actor: Actor,
        now: datetime | None = None,
    ) -> Officer:
        """Register an officer arriving from elsewhere as a new active record."""
        now = now or datetime.now(timezone.utc)
        district_code = payload.to_district_code
        local_code = payload.to_local_code
        if payload.oath_date > payload.transfer_date:
            raise ValidationError(
                "oath_date cannot be after transfer_date",
                details={
                    "oath_date": payload.oath_date.isoformat(),
                    "transfer_date": payload.transfer_date.isoformat(),
                },
            )
        validate_officer_fields(payload, now.date())
        require_scope(actor, district_code, local_code)
        week, year = week_bucket(payload.transfer_date)

        with atomic(db, "transfer_in"):
            officer = officer_records.create_officer(
                db,
                district_code,
                local_code,
                payload,
                DepartmentInput(
                    department=payload.department,
                    duty=payload.duty,
                    oath_date=payload.oath_date,
                ),
                created_by=actor.id,
                now=now,
            )
            transfer = Transfer(
                officer_id=officer.id,
                direction=TransferDirection.transfer_in,
                from_district=payload.from_district,
                from_local=payload.from_local,
                to_district=district_code,
                to_local=local_code,
                department=payload.department,
                duty=payload.duty,
                oath_date=payload.oath_date,
                transfer_date=payload.transfer_date,
                week=week,
                year=year,
                processed_by=actor.id,
                notes=payload.notes,
                created_at=now,
            )
            db.add(transfer)
            headcounts.increment(db, district_code, local_code, now)
            db.flush()
            audit_events.record(
                db, actor, "transfer_in", "officers", officer.id, after=snapshot(officer)
            )
            audit_events.record(
                db, actor, "transfer_in", "transfers", transfer.id, after=snapshot(transfer)
            )
        logger.info(
            "Transferred officer %s in to %s/%s (week %d/%d)",
            officer.id,
            district_code,
            local_code,
            week,
            year,
        )
        return officer

    @staticmethod
    def transfer_out(
        db: Session,
        payload: TransferOutRequest,
        actor: Actor,
        now: datetime | None = None,
    ) -> Transfer:
        now = now or datetime.now(timezone.utc)
        week, year = week_bucket(payload.transfer_date)

        with atomic(db, "transfer_out"):
            officer = lock_officer(db, payload.officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            if officer.status != OfficerStatus.active:
                raise ConsistencyViolation(
                    "Officer is not active",
                    details={"officer_id": str(officer.id), "status": officer.status.value},
                )
            before = snapshot(officer)

            held = officer_records.deactivate(officer, OfficerStatus.transferred_out, now)
            officer.transfer_out_date = payload.transfer_date
            classifications.recompute(officer, now.date())
            transfer = Transfer(
                officer_id=officer.id,
                direction=TransferDirection.transfer_out,
                from_district=officer.district_code,
                from_local=officer.local_code,
                to_district=payload.to_district,
                to_local=payload.to_local,
                department=held["department"],
                duty=held["duty"],
                oath_date=held["oath_date"],
                transfer_date=payload.transfer_date,
                week=week,
                year=year,
                processed_by=actor.id,
                notes=payload.notes,
                created_at=now,
            )
            db.add(transfer)
            headcounts.decrement(db, officer.district_code, officer.local_code, now)
            db.flush()
            audit_events.record(
                db,
                actor,
                "transfer_out",
                "officers",
                officer.id,
                before=before,
                after=snapshot(officer),
            )
            audit_events.record(
                db, actor, "transfer_out", "transfers", transfer.id, after=snapshot(transfer)
            )
            cancel_open_requests(db, officer, actor, now)
        logger.info(
            "Transferred officer %s out to %s/%s",
            officer.id,
            payload.to_district,
            payload.to_local,
        )
        return transfer

    @staticmethod
    def list(
        db: Session,
        district_code: str,
        local_code: str | None,
        direction: TransferDirection | None,
        week: int | None,
        year: int | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Transfer]:
        query = db.query(Transfer).filter(_congregation_filter(district_code, local_code))
        if direction is not None:
            query = query.filter(Transfer.direction == direction)
        if week is not None:
            query = query.filter(Transfer.week == week)
        if year is not None:
            query = query.filter(Transfer.year == year)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "transfer_date": Transfer.transfer_date,
                "created_at": Transfer.created_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def weekly_summary(
        db: Session, district_code: str, week: int, year: int
    ) -> list[dict]:
        """In/out counts per congregation of one district for an ISO week."""
        arrivals = (
            db.query(Transfer.to_local, func.count(Transfer.id))
            .filter(
                Transfer.direction == TransferDirection.transfer_in,
                Transfer.to_district == district_code,
                Transfer.week == week,
                Transfer.year == year,
            )
            .group_by(Transfer.to_local)
            .all()
        )
        departures = (
            db.query(Transfer.from_local, func.count(Transfer.id))
            .filter(
                Transfer.direction == TransferDirection.transfer_out,
                Transfer.from_district == district_code,
                Transfer.week == week,
                Transfer.year == year,
            )
            .group_by(Transfer.from_local)
            .all()
        )
        summary: dict[str, dict] = {}
        for local_code, count in arrivals:
            row = summary.setdefault(
                local_code,
                {"local_code": local_code, "transfers_in": 0, "transfers_out": 0},
            )
            row["transfers_in"] = count
        for local_code, count in departures:
            row = summary.setdefault(
                local_code,
                {"local_code": local_code, "transfers_in": 0, "transfers_out": 0},
            )
            row["transfers_out"] = count
        return [summary[key] for key in sorted(summary)]

    @staticmethod
    def out_history(
        db: Session,
        district_code: str,
        local_code: str,
        limit: int,
        offset: int,
    ) -> list[Transfer]:
        """Transfer-out rows newer than the congregation's latest clearance marker."""
        marker = history_clearances.latest_marker(
            district_code, local_code, HistoryView.transfer_out
        )
        query = db.query(Transfer).filter(
            Transfer.direction == TransferDirection.transfer_out,
            Transfer.from_district == district_code,
            Transfer.from_local == local_code,
            or_(marker.is_(None), Transfer.created_at > marker),
        )
        query = query.order_by(Transfer.transfer_date.desc(), Transfer.created_at.desc())
        return apply_pagination(query, limit, offset).all()


transfers = Transfers()
