import logging
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from app.errors import ConsistencyViolation, NotFoundError, ValidationError
from app.models.registry import (
    DepartmentAssignment,
    Officer,
    OfficerRemoval,
    OfficerStatus,
    RemovalCode,
    RemovalRequest,
    RemovalRequestStatus,
)
from app.schemas.removal import RemovalCreate, RemovalRequestCreate
from app.services.audit import audit_events, snapshot
from app.services.classification import classifications
from app.services.common import (
    apply_ordering,
    apply_pagination,
    atomic,
    coerce_uuid,
    lock_officer,
    week_bucket,
)
from app.services.headcount import headcounts
from app.services.officers import officer_records
from app.services.response import ListResponseMixin
from app.services.scope import Actor, require_scope

logger = logging.getLogger(__name__)

OPEN_REQUEST_STATUSES = (RemovalRequestStatus.deliberated, RemovalRequestStatus.requested)


def _require_active(officer: Officer) -> None:
    if officer.status != OfficerStatus.active:
        raise ConsistencyViolation(
            "Officer is not active",
            details={"officer_id": str(officer.id), "status": officer.status.value},
        )


def _apply_full_removal(
    db: Session,
    officer: Officer,
    removal_code: RemovalCode,
    reason: str | None,
    removal_date: date,
    actor: Actor,
    now: datetime,
    assignment_id=None,
    keep_request_id=None,
) -> OfficerRemoval:
    """Deactivate the officer and log the removal; the caller owns the transaction.

    Other open removal requests for the officer are cancelled.
    """
    week, year = week_bucket(removal_date)
    before = snapshot(officer)
    held = officer_records.deactivate(officer, OfficerStatus.removed, now)
    classifications.recompute(officer, now.date())
    removal = OfficerRemoval(
        officer_id=officer.id,
        department_assignment_id=assignment_id,
        removal_code=removal_code,
        reason=reason,
        department=held["department"],
        duty=held["duty"],
        removal_date=removal_date,
        week=week,
        year=year,
        processed_by=actor.id,
        created_at=now,
    )
    db.add(removal)
    # No destination: the officer's own congregation loses one
    headcounts.decrement(db, officer.district_code, officer.local_code, now)
    db.flush()
    audit_events.record(
        db,
        actor,
        "remove_officer",
        "officers",
        officer.id,
        before=before,
        after=snapshot(officer),
    )
    audit_events.record(
        db, actor, "remove_officer", "officer_removals", removal.id, after=snapshot(removal)
    )
    cancel_open_requests(db, officer, actor, now, keep_request_id)
    return removal


def _apply_department_removal(
    db: Session,
    officer: Officer,
    assignment: DepartmentAssignment,
    removal_code: RemovalCode,
    reason: str | None,
    removal_date: date,
    actor: Actor,
    now: datetime,
    keep_request_id=None,
) -> OfficerRemoval:
    """Close one assignment; the officer goes inactive only when none remain."""
    if not assignment.is_active:
        raise ConsistencyViolation(
            "Department assignment is not active",
            details={"department_assignment_id": str(assignment.id)},
        )
    remaining = [dept for dept in officer.active_departments if dept.id != assignment.id]
    if not remaining:
        return _apply_full_removal(
            db,
            officer,
            removal_code,
            reason,
            removal_date,
            actor,
            now,
            assignment_id=assignment.id,
            keep_request_id=keep_request_id,
        )

    week, year = week_bucket(removal_date)
    assignment.is_active = False
    assignment.removed_at = now
    removal = OfficerRemoval(
        officer_id=officer.id,
        department_assignment_id=assignment.id,
        removal_code=removal_code,
        reason=reason,
        department=assignment.department,
        duty=assignment.duty,
        removal_date=removal_date,
        week=week,
        year=year,
        processed_by=actor.id,
        created_at=now,
    )
    db.add(removal)
    db.flush()
    audit_events.record(
        db,
        actor,
        "remove_department",
        "department_assignments",
        assignment.id,
        after=snapshot(assignment),
    )
    audit_events.record(
        db, actor, "remove_department", "officer_removals", removal.id, after=snapshot(removal)
    )
    return removal


def cancel_open_requests(
    db: Session, officer: Officer, actor: Actor, now: datetime, keep_request_id=None
) -> None:
    query = db.query(RemovalRequest).filter(
        RemovalRequest.officer_id == officer.id,
        RemovalRequest.status.in_(OPEN_REQUEST_STATUSES),
    )
    if keep_request_id is not None:
        query = query.filter(RemovalRequest.id != keep_request_id)
    for request in query.all():
        before = snapshot(request)
        request.status = RemovalRequestStatus.cancelled
        request.updated_at = now
        audit_events.record(
            db,
            actor,
            "cancel_removal_request",
            "removal_requests",
            request.id,
            before=before,
            after=snapshot(request),
        )
        logger.info(
            "Cancelled removal request %s: officer %s was removed", request.id, officer.id
        )


def _lock_request(db: Session, request_id: str) -> RemovalRequest:
    request = (
        db.query(RemovalRequest)
        .filter(RemovalRequest.id == coerce_uuid(request_id))
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not request:
        raise NotFoundError(
            "Removal request not found", details={"request_id": str(request_id)}
        )
    return request


def _require_request_status(
    request: RemovalRequest, *allowed: RemovalRequestStatus
) -> None:
    if request.status not in allowed:
        raise ConsistencyViolation(
            f"Removal request is {request.status.value}",
            details={
                "request_id": str(request.id),
                "allowed": [status.value for status in allowed],
            },
        )


# ---------------------------------------------------------------------------
# Removals
# ---------------------------------------------------------------------------


class Removals(ListResponseMixin):
    @staticmethod
    def remove_officer(
        db: Session,
        payload: RemovalCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> OfficerRemoval:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "remove_officer"):
            officer = lock_officer(db, payload.officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            _require_active(officer)
            removal = _apply_full_removal(
                db,
                officer,
                payload.removal_code,
                payload.reason,
                payload.removal_date,
                actor,
                now,
            )
        logger.info(
            "Removed officer %s (%s)", officer.id, payload.removal_code.value
        )
        return removal

    @staticmethod
    def list(
        db: Session,
        district_code: str,
        local_code: str | None,
        removal_code: RemovalCode | None,
        week: int | None,
        year: int | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[OfficerRemoval]:
        query = (
            db.query(OfficerRemoval)
            .join(Officer, Officer.id == OfficerRemoval.officer_id)
            .filter(Officer.district_code == district_code)
        )
        if local_code is not None:
            query = query.filter(Officer.local_code == local_code)
        if removal_code is not None:
            query = query.filter(OfficerRemoval.removal_code == removal_code)
        if week is not None:
            query = query.filter(OfficerRemoval.week == week)
        if year is not None:
            query = query.filter(OfficerRemoval.year == year)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "removal_date": OfficerRemoval.removal_date,
                "created_at": OfficerRemoval.created_at,
            },
        )
        return apply_pagination(query, limit, offset).all()


# ---------------------------------------------------------------------------
# RemovalRequests
# ---------------------------------------------------------------------------


class RemovalRequests(ListResponseMixin):
    """Deliberated -> requested -> approved, or cancelled before approval."""

    @staticmethod
    def deliberate(
        db: Session,
        payload: RemovalRequestCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> RemovalRequest:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "deliberate_removal"):
            officer = lock_officer(db, payload.officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            _require_active(officer)

            assignment = None
            if payload.department_assignment_id is not None:
                assignment = db.get(DepartmentAssignment, payload.department_assignment_id)
                if not assignment or assignment.officer_id != officer.id:
                    raise ValidationError(
                        "Department assignment does not belong to this officer",
                        details={
                            "department_assignment_id": str(payload.department_assignment_id)
                        },
                    )
                if not assignment.is_active:
                    raise ConsistencyViolation("Department assignment is not active")

            open_requests = db.query(RemovalRequest).filter(
                RemovalRequest.officer_id == officer.id,
                RemovalRequest.status.in_(OPEN_REQUEST_STATUSES),
            )
            if payload.department_assignment_id is None:
                open_requests = open_requests.filter(
                    RemovalRequest.department_assignment_id.is_(None)
                )
            else:
                open_requests = open_requests.filter(
                    RemovalRequest.department_assignment_id
                    == payload.department_assignment_id
                )
            open_request = open_requests.first()
            if open_request:
                raise ConsistencyViolation(
                    "An open removal request already exists",
                    details={"request_id": str(open_request.id)},
                )

            request = RemovalRequest(
                officer_id=officer.id,
                department_assignment_id=payload.department_assignment_id,
                removal_code=payload.removal_code,
                reason=payload.reason,
                removal_date=payload.removal_date,
                status=RemovalRequestStatus.deliberated,
                deliberated_by=actor.id,
                created_at=now,
                updated_at=now,
            )
            db.add(request)
            db.flush()
            audit_events.record(
                db,
                actor,
                "deliberate_removal",
                "removal_requests",
                request.id,
                after=snapshot(request),
            )
            if payload.removal_code == RemovalCode.group_transfer:
                # Group transfers skip deliberation and apply at once
                RemovalRequests._approve(db, request, officer, assignment, actor, now)
        logger.info("Deliberated removal request %s", request.id)
        return request

    @staticmethod
    def submit(
        db: Session,
        request_id: str,
        notes: str | None,
        actor: Actor,
        now: datetime | None = None,
    ) -> RemovalRequest:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "submit_removal_request"):
            request = _lock_request(db, request_id)
            officer = request.officer
            require_scope(actor, officer.district_code, officer.local_code)
            _require_request_status(request, RemovalRequestStatus.deliberated)
            before = snapshot(request)
            request.status = RemovalRequestStatus.requested
            request.requested_by = actor.id
            request.requested_at = now
            request.updated_at = now
            if notes:
                request.notes = notes
            db.flush()
            audit_events.record(
                db,
                actor,
                "submit_removal_request",
                "removal_requests",
                request.id,
                before=before,
                after=snapshot(request),
            )
        logger.info("Submitted removal request %s", request.id)
        return request

    @staticmethod
    def approve(
        db: Session,
        request_id: str,
        notes: str | None,
        actor: Actor,
        now: datetime | None = None,
    ) -> RemovalRequest:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "approve_removal_request"):
            request = _lock_request(db, request_id)
            officer = lock_officer(db, request.officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            _require_request_status(request, RemovalRequestStatus.requested)
            _require_active(officer)
            if notes:
                request.notes = notes
            RemovalRequests._approve(
                db, request, officer, request.department_assignment, actor, now
            )
        logger.info("Approved removal request %s", request.id)
        return request

    @staticmethod
    def cancel(
        db: Session,
        request_id: str,
        notes: str | None,
        actor: Actor,
        now: datetime | None = None,
    ) -> RemovalRequest:
        now = now or datetime.now(timezone.utc)
        with atomic(db, "cancel_removal_request"):
            request = _lock_request(db, request_id)
            officer = request.officer
            require_scope(actor, officer.district_code, officer.local_code)
            _require_request_status(request, *OPEN_REQUEST_STATUSES)
            before = snapshot(request)
            request.status = RemovalRequestStatus.cancelled
            request.updated_at = now
            if notes:
                request.notes = notes
            db.flush()
            audit_events.record(
                db,
                actor,
                "cancel_removal_request",
                "removal_requests",
                request.id,
                before=before,
                after=snapshot(request),
            )
        logger.info("Cancelled removal request %s", request.id)
        return request

    @staticmethod
    def _approve(
        db: Session,
        request: RemovalRequest,
        officer: Officer,
        assignment: DepartmentAssignment | None,
        actor: Actor,
        now: datetime,
    ) -> None:
        before = snapshot(request)
        if assignment is None:
            removal = _apply_full_removal(
                db,
                officer,
                request.removal_code,
                request.reason,
                request.removal_date,
                actor,
                now,
                keep_request_id=request.id,
            )
        else:
            removal = _apply_department_removal(
                db,
                officer,
                assignment,
                request.removal_code,
                request.reason,
                request.removal_date,
                actor,
                now,
                keep_request_id=request.id,
            )
        request.status = RemovalRequestStatus.approved
        request.approved_by = actor.id
        request.approved_at = now
        request.updated_at = now
        request.removal_id = removal.id
        db.flush()
        audit_events.record(
            db,
            actor,
            "approve_removal_request",
            "removal_requests",
            request.id,
            before=before,
            after=snapshot(request),
        )

    @staticmethod
    def get(db: Session, request_id: str) -> RemovalRequest:
        request = db.get(RemovalRequest, coerce_uuid(request_id))
        if not request:
            raise NotFoundError(
                "Removal request not found", details={"request_id": str(request_id)}
            )
        return request

    @staticmethod
    def list(
        db: Session,
        district_code: str,
        local_code: str | None,
        status: RemovalRequestStatus | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[RemovalRequest]:
        query = (
            db.query(RemovalRequest)
            .join(Officer, Officer.id == RemovalRequest.officer_id)
            .filter(Officer.district_code == district_code)
        )
        if local_code is not None:
            query = query.filter(Officer.local_code == local_code)
        if status is not None:
            query = query.filter(RemovalRequest.status == status)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": RemovalRequest.created_at,
                "removal_date": RemovalRequest.removal_date,
                "status": RemovalRequest.status,
            },
        )
        return apply_pagination(query, limit, offset).all()


removals = Removals()
removal_requests = RemovalRequests()
