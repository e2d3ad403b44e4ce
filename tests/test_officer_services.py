import uuid
from datetime import date

import pytest

from app.errors import (
    AuthorizationError,
    ConsistencyViolation,
    NotFoundError,
    ValidationError,
)
from app.models.audit import AuditEntry
from app.models.registry import (
    Classification,
    DepartmentAssignment,
    Officer,
    OfficerStatus,
    Transfer,
    TransferDirection,
)
from app.schemas.officer import DepartmentInput, OfficerCreate
from app.schemas.transfer import TransferOutRequest
from app.services.field_cipher import PLACEHOLDER, FieldCipher, get_cipher
from app.services.headcount import headcounts
from app.services.officers import OfficerRecords
from app.services.transfers import Transfers


def _payload(district="D01", local="L001", **overrides):
    data = {
        "district_code": district,
        "local_code": local,
        "last_name": "Dela Cruz",
        "first_name": "Juan",
        "middle_initial": "P",
        "birthdate": date(1970, 5, 17),
        "registry_number": f"REG-{uuid.uuid4().hex[:8]}",
        "control_number": "CN-100",
        "purok": "Purok 3",
        "department": {
            "department": "Choir",
            "duty": "Tenor",
            "oath_date": date(2020, 1, 5),
        },
    }
    data.update(overrides)
    return OfficerCreate(**data)


def _intake(db_session, actor, **overrides):
    return OfficerRecords.intake(db_session, _payload(**overrides), actor)


def _transfer_out(db_session, officer, actor):
    return Transfers.transfer_out(
        db_session,
        TransferOutRequest(
            officer_id=officer.id,
            to_district="D02",
            to_local="L777",
            transfer_date=date(2024, 3, 1),
        ),
        actor,
    )


class TestIntake:
    def test_creates_active_officer(self, db_session, admin):
        officer = _intake(db_session, admin)
        assert officer.status == OfficerStatus.active
        assert officer.is_active is True
        assert officer.created_by == "admin-1"
        assert len(officer.active_departments) == 1
        assert officer.active_departments[0].department == "Choir"
        assert headcounts.get(db_session, "D01", "L001") == 1

    def test_personal_fields_are_encrypted(self, db_session, admin):
        officer = _intake(db_session, admin)
        assert officer.last_name != "Dela Cruz"
        assert officer.last_name.startswith("v1:")
        assert get_cipher().decrypt(officer.last_name, "D01") == "Dela Cruz"
        assert get_cipher().decrypt(officer.birthdate, "D01") == "1970-05-17"

    def test_auto_classification_on_create(self, db_session, admin):
        officer = _intake(db_session, admin, birthdate=None, marriage_date=date(2015, 2, 1))
        assert officer.classification_auto == Classification.adult

    def test_writes_audit_entry(self, db_session, admin):
        officer = _intake(db_session, admin)
        entry = (
            db_session.query(AuditEntry)
            .filter(AuditEntry.record_id == str(officer.id))
            .one()
        )
        assert entry.action == "intake"
        assert entry.actor_id == "admin-1"
        assert entry.after["status"] == "active"
        # Snapshots keep ciphertext
        assert entry.after["last_name"].startswith("v1:")

    def test_out_of_scope_actor(self, db_session, local_actor):
        with pytest.raises(AuthorizationError):
            _intake(db_session, local_actor, local="L002")
        assert db_session.query(Officer).count() == 0
        assert headcounts.get(db_session, "D01", "L002") == 0

    def test_future_birthdate_rejected(self, db_session, admin):
        with pytest.raises(ValidationError):
            _intake(db_session, admin, birthdate=date(2999, 1, 1))
        assert db_session.query(Officer).count() == 0

    def test_marriage_before_birth_rejected(self, db_session, admin):
        with pytest.raises(ValidationError):
            _intake(
                db_session,
                admin,
                birthdate=date(1990, 1, 1),
                marriage_date=date(1985, 1, 1),
            )


class TestLookups:
    def test_get_not_found(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            OfficerRecords.get(db_session, str(uuid.uuid4()))
        assert exc.value.status_code == 404

    def test_get_invalid_id(self, db_session):
        with pytest.raises(ValidationError):
            OfficerRecords.get(db_session, "not-a-uuid")

    def test_get_by_ref(self, db_session, admin):
        officer = _intake(db_session, admin)
        assert OfficerRecords.get_by_ref(db_session, officer.ref_no).id == officer.id

    def test_find_by_registry_number(self, db_session, admin):
        officer = _intake(db_session, admin, registry_number="REG-42")
        _intake(db_session, admin)
        found = OfficerRecords.find_by_registry_number(db_session, "D01", " REG-42 ")
        assert [o.id for o in found] == [officer.id]

    def test_registry_number_is_district_scoped(self, db_session, admin):
        _intake(db_session, admin, registry_number="REG-42")
        assert OfficerRecords.find_by_registry_number(db_session, "D02", "REG-42") == []

    def test_list_filters(self, db_session, admin):
        first = _intake(db_session, admin, local="L001")
        _intake(db_session, admin, local="L002")
        results = OfficerRecords.list(
            db_session,
            district_code="D01",
            local_code="L001",
            status=OfficerStatus.active,
            order_by="created_at",
            order_dir="desc",
            limit=50,
            offset=0,
        )
        assert [o.id for o in results] == [first.id]

    def test_list_invalid_order_by(self, db_session):
        with pytest.raises(ValidationError):
            OfficerRecords.list(
                db_session,
                district_code=None,
                local_code=None,
                status=None,
                order_by="last_name",
                order_dir="asc",
                limit=50,
                offset=0,
            )


class TestDisplay:
    def test_decrypts_fields(self, db_session, admin):
        officer = _intake(db_session, admin)
        data = OfficerRecords.display(officer)
        assert data["last_name"] == "Dela Cruz"
        assert data["first_name"] == "Juan"
        assert data["birthdate"] == "1970-05-17"
        assert data["effective_classification"] == Classification.adult

    def test_masks_each_field_independently(self, db_session, admin):
        officer = _intake(db_session, admin)
        officer.last_name = FieldCipher("some-other-key").encrypt("Santos", "D01")
        db_session.commit()
        data = OfficerRecords.display(officer)
        assert data["last_name"] == PLACEHOLDER
        assert data["first_name"] == "Juan"


class TestDeactivate:
    def test_closes_assignments_and_returns_snapshot(self, db_session, admin):
        officer = _intake(db_session, admin)
        held = OfficerRecords.deactivate(officer, OfficerStatus.transferred_out)
        assert officer.is_active is False
        assert officer.status == OfficerStatus.transferred_out
        assert held["department"] == "Choir"
        assert held["duty"] == "Tenor"
        assert all(not dept.is_active for dept in officer.departments)
        assert all(dept.removed_at is not None for dept in officer.departments)

    def test_rejects_active_status(self, db_session, admin):
        officer = _intake(db_session, admin)
        with pytest.raises(ValueError):
            OfficerRecords.deactivate(officer, OfficerStatus.active)


class TestUpdateBirthdate:
    def test_reclassifies(self, db_session, admin):
        officer = _intake(db_session, admin)
        updated = OfficerRecords.update_birthdate(
            db_session, str(officer.id), date(2015, 3, 3), admin
        )
        assert updated.classification_auto == Classification.child
        assert get_cipher().decrypt(updated.birthdate, "D01") == "2015-03-03"

    def test_clearing_birthdate_unclassifies(self, db_session, admin):
        officer = _intake(db_session, admin)
        updated = OfficerRecords.update_birthdate(db_session, str(officer.id), None, admin)
        assert updated.birthdate is None
        assert updated.classification_auto is None

    def test_out_of_scope(self, db_session, admin, local_actor):
        officer = _intake(db_session, admin, local="L009")
        with pytest.raises(AuthorizationError):
            OfficerRecords.update_birthdate(
                db_session, str(officer.id), date(2001, 1, 1), local_actor
            )


class TestMerge:
    def test_merges_duplicates(self, db_session, admin):
        primary = _intake(db_session, admin)
        duplicate = _intake(db_session, admin)
        db_session.add(
            DepartmentAssignment(
                officer_id=duplicate.id,
                department="Usher",
                duty="Head",
                oath_date=date(2021, 6, 1),
            )
        )
        db_session.add(
            Transfer(
                officer_id=duplicate.id,
                direction=TransferDirection.transfer_in,
                to_district="D01",
                to_local="L001",
                transfer_date=date(2022, 1, 1),
                week=52,
                year=2021,
            )
        )
        db_session.commit()
        duplicate_id = duplicate.id
        assert headcounts.get(db_session, "D01", "L001") == 2

        merged, count = OfficerRecords.merge(
            db_session, str(primary.id), [str(duplicate_id)], admin
        )

        assert count == 1
        assert db_session.get(Officer, duplicate_id) is None
        departments = sorted((d.department, d.duty) for d in merged.departments)
        # Choir/Tenor is held by both and is kept once
        assert departments == [("Choir", "Tenor"), ("Usher", "Head")]
        assert db_session.query(Transfer).filter(
            Transfer.officer_id == merged.id
        ).count() == 1
        assert headcounts.get(db_session, "D01", "L001") == 1
        assert headcounts.live_count(db_session, "D01", "L001") == 1

    def test_cannot_merge_into_itself(self, db_session, admin):
        officer = _intake(db_session, admin)
        with pytest.raises(ValidationError):
            OfficerRecords.merge(db_session, str(officer.id), [str(officer.id)], admin)

    def test_unknown_duplicate_rolls_back(self, db_session, admin):
        primary = _intake(db_session, admin)
        with pytest.raises(NotFoundError):
            OfficerRecords.merge(db_session, str(primary.id), [str(uuid.uuid4())], admin)
        assert headcounts.get(db_session, "D01", "L001") == 1

    def test_active_duplicate_into_inactive_primary_rejected(self, db_session, admin):
        primary = _intake(db_session, admin)
        duplicate = _intake(db_session, admin)
        _transfer_out(db_session, primary, admin)

        with pytest.raises(ConsistencyViolation):
            OfficerRecords.merge(db_session, str(primary.id), [str(duplicate.id)], admin)

        assert db_session.get(Officer, duplicate.id) is not None
        db_session.refresh(primary)
        assert primary.active_departments == []
        assert headcounts.get(db_session, "D01", "L001") == 1

    def test_inactive_records_merge_into_inactive_primary(self, db_session, admin):
        primary = _intake(db_session, admin)
        duplicate = _intake(db_session, admin)
        _transfer_out(db_session, primary, admin)
        _transfer_out(db_session, duplicate, admin)

        merged, _ = OfficerRecords.merge(
            db_session, str(primary.id), [str(duplicate.id)], admin
        )

        assert merged.active_departments == []
        assert headcounts.get(db_session, "D01", "L001") == 0

    def test_active_assignment_is_not_folded_into_closed_copy(self, db_session, admin):
        primary = _intake(db_session, admin)
        db_session.add(
            DepartmentAssignment(
                officer_id=primary.id,
                department="Usher",
                oath_date=date(2010, 1, 1),
                is_active=False,
            )
        )
        db_session.commit()
        duplicate = _intake(db_session, admin)
        OfficerRecords.assign_department(
            db_session,
            str(duplicate.id),
            DepartmentInput(department="Usher", oath_date=date(2022, 2, 2)),
            admin,
        )

        merged, _ = OfficerRecords.merge(
            db_session, str(primary.id), [str(duplicate.id)], admin
        )

        db_session.refresh(merged)
        active = sorted((d.department, d.duty) for d in merged.active_departments)
        assert active == [("Choir", "Tenor"), ("Usher", None)]
        assert len(merged.departments) == 3


class TestAssignDepartment:
    def test_adds_assignment(self, db_session, admin):
        officer = _intake(db_session, admin)
        assignment = OfficerRecords.assign_department(
            db_session,
            str(officer.id),
            DepartmentInput(department="Usher", duty="Head", oath_date=date(2023, 4, 2)),
            admin,
        )
        db_session.refresh(officer)
        assert assignment.officer_id == officer.id
        assert assignment.is_active is True
        assert sorted(d.department for d in officer.active_departments) == [
            "Choir",
            "Usher",
        ]
        assert headcounts.get(db_session, "D01", "L001") == 1
        entry = (
            db_session.query(AuditEntry)
            .filter(AuditEntry.action == "assign_department")
            .one()
        )
        assert entry.record_id == str(assignment.id)

    def test_same_department_new_duty(self, db_session, admin):
        officer = _intake(db_session, admin)
        OfficerRecords.assign_department(
            db_session,
            str(officer.id),
            DepartmentInput(department="Choir", duty="Director", oath_date=date(2023, 4, 2)),
            admin,
        )
        db_session.refresh(officer)
        assert len(officer.active_departments) == 2

    def test_already_held(self, db_session, admin):
        officer = _intake(db_session, admin)
        with pytest.raises(ConsistencyViolation):
            OfficerRecords.assign_department(
                db_session,
                str(officer.id),
                DepartmentInput(department="Choir", duty="Tenor", oath_date=date(2023, 4, 2)),
                admin,
            )

    def test_inactive_officer(self, db_session, admin):
        officer = _intake(db_session, admin)
        _transfer_out(db_session, officer, admin)
        with pytest.raises(ConsistencyViolation):
            OfficerRecords.assign_department(
                db_session,
                str(officer.id),
                DepartmentInput(department="Usher", oath_date=date(2023, 4, 2)),
                admin,
            )
        assert db_session.query(DepartmentAssignment).filter(
            DepartmentAssignment.is_active.is_(True)
        ).count() == 0

    def test_out_of_scope(self, db_session, admin, local_actor):
        officer = _intake(db_session, admin, local="L002")
        with pytest.raises(AuthorizationError):
            OfficerRecords.assign_department(
                db_session,
                str(officer.id),
                DepartmentInput(department="Usher", oath_date=date(2023, 4, 2)),
                local_actor,
            )

    def test_future_oath_date(self, db_session, admin):
        officer = _intake(db_session, admin)
        with pytest.raises(ValidationError):
            OfficerRecords.assign_department(
                db_session,
                str(officer.id),
                DepartmentInput(department="Usher", oath_date=date(2999, 1, 1)),
                admin,
            )
