from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from app.errors import ConsistencyViolation, NotFoundError, ValidationError
from app.models.classification import ClassificationChange
from app.models.registry import (
    DepartmentAssignment,
    Officer,
    OfficerRemoval,
    OfficerStatus,
    RemovalRequest,
    Transfer,
)
from app.schemas.officer import DepartmentInput, OfficerCreate, OfficerFields
from app.services.audit import audit_events, snapshot
from app.services.classification import classifications
from app.services.common import (
    apply_ordering,
    apply_pagination,
    atomic,
    coerce_uuid,
    lock_officer,
)
from app.services.field_cipher import get_cipher
from app.services.headcount import headcounts
from app.services.response import ListResponseMixin
from app.services.scope import Actor, require_scope

logger = logging.getLogger(__name__)

ENCRYPTED_FIELDS = (
    "last_name",
    "first_name",
    "middle_initial",
    "birthdate",
    "control_number",
    "registry_number",
)


def validate_officer_fields(fields: OfficerFields, today: date) -> None:
    if fields.birthdate and fields.birthdate > today:
        raise ValidationError(
            "birthdate cannot be in the future",
            details={"birthdate": fields.birthdate.isoformat()},
        )
    if fields.birthdate and fields.marriage_date and fields.marriage_date < fields.birthdate:
        raise ValidationError("marriage_date cannot precede birthdate")


def _encrypted_values(fields: OfficerFields, district_code: str) -> dict:
    cipher = get_cipher()
    values = fields.model_dump(include=set(ENCRYPTED_FIELDS))
    if values.get("birthdate") is not None:
        values["birthdate"] = values["birthdate"].isoformat()
    return {key: cipher.encrypt(value, district_code) for key, value in values.items()}


# ---------------------------------------------------------------------------
# OfficerRecords
# ---------------------------------------------------------------------------


class OfficerRecords(ListResponseMixin):
    @staticmethod
    def create_officer(
        db: Session,
        district_code: str,
        local_code: str,
        fields: OfficerFields,
        department: DepartmentInput,
        created_by: str | None = None,
        now: datetime | None = None,
    ) -> Officer:
        """Write an officer and its first department assignment; the caller commits."""
        now = now or datetime.now(timezone.utc)
        officer = Officer(
            district_code=district_code,
            local_code=local_code,
            purok=fields.purok,
            grupo=fields.grupo,
            marriage_date=fields.marriage_date,
            status=OfficerStatus.active,
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            **_encrypted_values(fields, district_code),
        )
        classifications.recompute(officer, now.date())
        officer.departments.append(
            DepartmentAssignment(
                department=department.department,
                duty=department.duty,
                oath_date=department.oath_date,
                is_active=True,
                created_at=now,
            )
        )
        db.add(officer)
        db.flush()
        return officer

    @staticmethod
    def deactivate(
        officer: Officer, status: OfficerStatus, now: datetime | None = None
    ) -> dict:
        """Mark the officer inactive and close every active assignment.

        Returns the department/duty held at the time, for the ledger record.
        """
        if status == OfficerStatus.active:
            raise ValueError("deactivate requires an inactive status")
        now = now or datetime.now(timezone.utc)
        held = officer.active_departments
        officer.status = status
        officer.is_active = False
        for assignment in held:
            assignment.is_active = False
            assignment.removed_at = now
        primary = held[0] if held else None
        return {
            "department": primary.department if primary else None,
            "duty": primary.duty if primary else None,
            "oath_date": primary.oath_date if primary else None,
            "departments": [
                {"department": dept.department, "duty": dept.duty} for dept in held
            ],
        }

    @staticmethod
    def intake(
        db: Session,
        payload: OfficerCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> Officer:
        now = now or datetime.now(timezone.utc)
        require_scope(actor, payload.district_code, payload.local_code)
        validate_officer_fields(payload, now.date())
        with atomic(db, "intake"):
            officer = OfficerRecords.create_officer(
                db,
                payload.district_code,
                payload.local_code,
                payload,
                payload.department,
                created_by=actor.id,
                now=now,
            )
            headcounts.increment(db, payload.district_code, payload.local_code, now)
            audit_events.record(
                db, actor, "intake", "officers", officer.id, after=snapshot(officer)
            )
        logger.info(
            "Registered officer %s in %s/%s",
            officer.id,
            payload.district_code,
            payload.local_code,
        )
        return officer

    @staticmethod
    def get(db: Session, officer_id: str) -> Officer:
        officer = db.get(Officer, coerce_uuid(officer_id))
        if not officer:
            raise NotFoundError("Officer not found", details={"officer_id": str(officer_id)})
        return officer

    @staticmethod
    def get_by_ref(db: Session, ref_no: str) -> Officer:
        officer = db.query(Officer).filter(Officer.ref_no == ref_no).first()
        if not officer:
            raise NotFoundError("Officer not found", details={"ref_no": ref_no})
        return officer

    @staticmethod
    def list(
        db: Session,
        district_code: str | None,
        local_code: str | None,
        status: OfficerStatus | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Officer]:
        query = db.query(Officer)
        if district_code is not None:
            query = query.filter(Officer.district_code == district_code)
        if local_code is not None:
            query = query.filter(Officer.local_code == local_code)
        if status is not None:
            query = query.filter(Officer.status == status)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Officer.created_at,
                "updated_at": Officer.updated_at,
                "ref_no": Officer.ref_no,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def find_by_registry_number(
        db: Session, district_code: str, registry_number: str
    ) -> list[Officer]:
        # Deterministic encryption makes this an exact ciphertext match
        ciphertext = get_cipher().encrypt(registry_number.strip(), district_code)
        if ciphertext is None:
            return []
        return (
            db.query(Officer)
            .filter(
                Officer.district_code == district_code,
                Officer.registry_number == ciphertext,
            )
            .order_by(Officer.created_at.desc())
            .all()
        )

    @staticmethod
    def display(officer: Officer) -> dict:
        """Decrypted view of an officer; each unreadable field is masked on its own."""
        cipher = get_cipher()
        data = {
            "id": officer.id,
            "ref_no": officer.ref_no,
            "district_code": officer.district_code,
            "local_code": officer.local_code,
            "purok": officer.purok,
            "grupo": officer.grupo,
            "marriage_date": officer.marriage_date,
            "status": officer.status,
            "is_active": officer.is_active,
            "transfer_out_date": officer.transfer_out_date,
            "classification_auto": officer.classification_auto,
            "classification_manual": officer.classification_manual,
            "effective_classification": officer.effective_classification,
            "departments": list(officer.departments),
            "created_at": officer.created_at,
            "updated_at": officer.updated_at,
        }
        for field in ENCRYPTED_FIELDS:
            data[field] = cipher.decrypt_or_placeholder(
                getattr(officer, field), officer.district_code
            )
        return data

    @staticmethod
    def update_birthdate(
        db: Session,
        officer_id: str,
        birthdate: date | None,
        actor: Actor,
        now: datetime | None = None,
    ) -> Officer:
        now = now or datetime.now(timezone.utc)
        if birthdate and birthdate > now.date():
            raise ValidationError("birthdate cannot be in the future")
        with atomic(db, "update_birthdate"):
            officer = lock_officer(db, officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            before = snapshot(officer)
            officer.birthdate = get_cipher().encrypt(
                birthdate.isoformat() if birthdate else None, officer.district_code
            )
            classifications.recompute(officer, now.date())
            db.flush()
            audit_events.record(
                db,
                actor,
                "update_birthdate",
                "officers",
                officer.id,
                before=before,
                after=snapshot(officer),
            )
        logger.info("Updated birthdate of officer %s", officer.id)
        return officer

    @staticmethod
    def assign_department(
        db: Session,
        officer_id: str,
        department: DepartmentInput,
        actor: Actor,
        now: datetime | None = None,
    ) -> DepartmentAssignment:
        """Give an active officer one more assignment; the headcount is unchanged."""
        now = now or datetime.now(timezone.utc)
        if department.oath_date > now.date():
            raise ValidationError("oath_date cannot be in the future")
        with atomic(db, "assign_department"):
            officer = lock_officer(db, officer_id)
            require_scope(actor, officer.district_code, officer.local_code)
            if officer.status != OfficerStatus.active:
                raise ConsistencyViolation(
                    "Officer is not active",
                    details={"officer_id": str(officer.id), "status": officer.status.value},
                )
            for held in officer.active_departments:
                if (held.department, held.duty) == (department.department, department.duty):
                    raise ConsistencyViolation(
                        "Officer already holds this assignment",
                        details={"department_assignment_id": str(held.id)},
                    )
            assignment = DepartmentAssignment(
                department=department.department,
                duty=department.duty,
                oath_date=department.oath_date,
                is_active=True,
                created_at=now,
            )
            officer.departments.append(assignment)
            officer.updated_at = now
            db.flush()
            audit_events.record(
                db,
                actor,
                "assign_department",
                "department_assignments",
                assignment.id,
                after=snapshot(assignment),
            )
        logger.info("Assigned officer %s to %s", officer.id, department.department)
        return assignment

    @staticmethod
    def merge(
        db: Session,
        primary_id: str,
        duplicate_ids: list,
        actor: Actor,
        now: datetime | None = None,
    ) -> tuple[Officer, int]:
        """Fold duplicate officer rows into one record and delete the duplicates."""
        now = now or datetime.now(timezone.utc)
        primary_uuid = coerce_uuid(primary_id)
        duplicate_uuids = list(dict.fromkeys(coerce_uuid(value) for value in duplicate_ids))
        if not duplicate_uuids:
            raise ValidationError("At least one duplicate is required")
        if primary_uuid in duplicate_uuids:
            raise ValidationError("An officer cannot be merged into itself")

        with atomic(db, "merge_officers"):
            primary = lock_officer(db, primary_uuid)
            require_scope(actor, primary.district_code, primary.local_code)
            duplicates = [lock_officer(db, value) for value in duplicate_uuids]
            for duplicate in duplicates:
                require_scope(actor, duplicate.district_code, duplicate.local_code)
            if primary.status != OfficerStatus.active:
                active = [str(d.id) for d in duplicates if d.status == OfficerStatus.active]
                if active:
                    raise ConsistencyViolation(
                        "Active officers cannot be merged into an inactive record",
                        details={
                            "primary_id": str(primary.id),
                            "status": primary.status.value,
                            "active_duplicates": active,
                        },
                    )

            held = {
                (dept.department, dept.duty, dept.is_active): dept.id
                for dept in primary.departments
            }
            before = [snapshot(duplicate) for duplicate in duplicates]
            for duplicate in duplicates:
                _merge_departments(db, duplicate, primary, held)
                for model in (Transfer, OfficerRemoval, RemovalRequest, ClassificationChange):
                    db.query(model).filter(model.officer_id == duplicate.id).update(
                        {"officer_id": primary.id}, synchronize_session=False
                    )
                if duplicate.status == OfficerStatus.active:
                    headcounts.decrement(
                        db, duplicate.district_code, duplicate.local_code, now
                    )
                db.query(Officer).filter(Officer.id == duplicate.id).delete(
                    synchronize_session=False
                )
            audit_events.record(
                db,
                actor,
                "merge_officers",
                "officers",
                primary.id,
                before={"duplicates": before},
                after={
                    "primary_id": str(primary.id),
                    "merged_ids": [str(value) for value in duplicate_uuids],
                },
            )
        for duplicate in duplicates:
            db.expunge(duplicate)
        logger.info(
            "Merged %d duplicate(s) into officer %s", len(duplicate_uuids), primary_uuid
        )
        return primary, len(duplicate_uuids)


def _merge_departments(
    db: Session, duplicate: Officer, primary: Officer, held: dict
) -> None:
    """Move assignments the primary lacks; drop copies it holds in the same state."""
    for dept in list(duplicate.departments):
        key = (dept.department, dept.duty, dept.is_active)
        existing_id = held.get(key)
        if existing_id is None:
            db.query(DepartmentAssignment).filter(
                DepartmentAssignment.id == dept.id
            ).update({"officer_id": primary.id}, synchronize_session=False)
            held[key] = dept.id
            continue
        for model in (OfficerRemoval, RemovalRequest):
            db.query(model).filter(model.department_assignment_id == dept.id).update(
                {"department_assignment_id": existing_id}, synchronize_session=False
            )
        db.query(DepartmentAssignment).filter(
            DepartmentAssignment.id == dept.id
        ).delete(synchronize_session=False)


officer_records = OfficerRecords()
