"""initial registry schema

Revision ID: 3f9c1a7e5b20
Revises:
Create Date: 2026-10-19 09:12:40.118302

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f9c1a7e5b20"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "officerstatus": ("active", "transferred_out", "removed"),
    "classification": ("child", "youth", "adult"),
    "transferdirection": ("in", "out"),
    "removalcode": (
        "deceased",
        "suspended",
        "voluntary_departure",
        "administrative_correction",
        "group_transfer",
    ),
    "removalrequeststatus": ("deliberated", "requested", "approved", "cancelled"),
    "baselinescope": ("child", "youth", "adult", "all"),
    "baselineperiod": ("week", "month"),
    "historyview": ("transfer_out", "classification_changes"),
}


def _enum(name: str):
    # Types are created once up front; several tables share them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Officers + department history
    op.create_table(
        "officers",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("ref_no", sa.String(length=32), nullable=False),
        sa.Column("district_code", sa.String(length=40), nullable=False),
        sa.Column("local_code", sa.String(length=40), nullable=False),
        sa.Column("purok", sa.String(length=80), nullable=True),
        sa.Column("grupo", sa.String(length=80), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("middle_initial", sa.Text(), nullable=True),
        sa.Column("birthdate", sa.Text(), nullable=True),
        sa.Column("control_number", sa.Text(), nullable=True),
        sa.Column("registry_number", sa.String(length=255), nullable=True),
        sa.Column("marriage_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            _enum("officerstatus"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("transfer_out_date", sa.Date(), nullable=True),
        sa.Column(
            "classification_auto",
            _enum("classification"),
            nullable=True,
        ),
        sa.Column(
            "classification_manual",
            _enum("classification"),
            nullable=True,
        ),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ref_no", name="uq_officers_ref_no"),
    )
    op.create_index(
        "ix_officers_district_local", "officers", ["district_code", "local_code"]
    )
    op.create_index("ix_officers_status", "officers", ["status"])
    op.create_index(
        "ix_officers_registry_number", "officers", ["district_code", "registry_number"]
    )

    op.create_table(
        "department_assignments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("officer_id", sa.UUID(), nullable=False),
        sa.Column("department", sa.String(length=120), nullable=False),
        sa.Column("duty", sa.String(length=255), nullable=True),
        sa.Column("oath_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_department_assignments_officer_id", "department_assignments", ["officer_id"]
    )

    # Ledgers
    op.create_table(
        "transfers",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("officer_id", sa.UUID(), nullable=False),
        sa.Column(
            "direction", _enum("transferdirection"), nullable=False
        ),
        sa.Column("from_district", sa.String(length=255), nullable=True),
        sa.Column("from_local", sa.String(length=255), nullable=True),
        sa.Column("to_district", sa.String(length=255), nullable=True),
        sa.Column("to_local", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=120), nullable=True),
        sa.Column("duty", sa.String(length=255), nullable=True),
        sa.Column("oath_date", sa.Date(), nullable=True),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transfers_officer_id", "transfers", ["officer_id"])
    op.create_index("ix_transfers_week_year", "transfers", ["year", "week"])
    op.create_index("ix_transfers_to_local", "transfers", ["to_local"])
    op.create_index("ix_transfers_from_local", "transfers", ["from_local"])

    removal_code = _enum("removalcode")
    op.create_table(
        "officer_removals",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("officer_id", sa.UUID(), nullable=False),
        sa.Column("department_assignment_id", sa.UUID(), nullable=True),
        sa.Column("removal_code", removal_code, nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("department", sa.String(length=120), nullable=True),
        sa.Column("duty", sa.String(length=255), nullable=True),
        sa.Column("removal_date", sa.Date(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"]),
        sa.ForeignKeyConstraint(
            ["department_assignment_id"], ["department_assignments.id"]
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_officer_removals_officer_id", "officer_removals", ["officer_id"]
    )
    op.create_index(
        "ix_officer_removals_week_year", "officer_removals", ["year", "week"]
    )

    op.create_table(
        "removal_requests",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("officer_id", sa.UUID(), nullable=False),
        sa.Column("department_assignment_id", sa.UUID(), nullable=True),
        sa.Column(
            "removal_code",
            removal_code,
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("removal_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("removalrequeststatus"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("deliberated_by", sa.String(length=120), nullable=True),
        sa.Column("requested_by", sa.String(length=120), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=120), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("removal_id", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"]),
        sa.ForeignKeyConstraint(
            ["department_assignment_id"], ["department_assignments.id"]
        ),
        sa.ForeignKeyConstraint(["removal_id"], ["officer_removals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_removal_requests_officer_id", "removal_requests", ["officer_id"]
    )
    op.create_index("ix_removal_requests_status", "removal_requests", ["status"])

    # Headcount aggregate
    op.create_table(
        "headcount",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("district_code", sa.String(length=40), nullable=False),
        sa.Column("local_code", sa.String(length=40), nullable=False),
        sa.Column("total_count", sa.Integer(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "district_code", "local_code", name="uq_headcount_district_local"
        ),
    )

    # Classification
    op.create_table(
        "classification_baselines",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("district_code", sa.String(length=40), nullable=False),
        sa.Column("local_code", sa.String(length=40), nullable=False),
        sa.Column(
            "classification",
            _enum("baselinescope"),
            nullable=False,
        ),
        sa.Column(
            "period", _enum("baselineperiod"), nullable=False
        ),
        sa.Column("reset_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reset_by", sa.String(length=120), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_classification_baselines_lookup",
        "classification_baselines",
        ["district_code", "local_code", "classification", "period", "reset_at"],
    )

    classification_ref = _enum("classification")
    op.create_table(
        "classification_changes",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("officer_id", sa.UUID(), nullable=False),
        sa.Column("district_code", sa.String(length=40), nullable=False),
        sa.Column("local_code", sa.String(length=40), nullable=False),
        sa.Column("previous_classification", classification_ref, nullable=True),
        sa.Column("new_classification", classification_ref, nullable=True),
        sa.Column("auto_classification", classification_ref, nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changed_by", sa.String(length=120), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_classification_changes_congregation",
        "classification_changes",
        ["district_code", "local_code"],
    )
    op.create_index(
        "ix_classification_changes_officer_id", "classification_changes", ["officer_id"]
    )

    op.create_table(
        "history_clearances",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("district_code", sa.String(length=40), nullable=False),
        sa.Column("local_code", sa.String(length=40), nullable=False),
        sa.Column(
            "view",
            _enum("historyview"),
            nullable=False,
        ),
        sa.Column("cleared_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cleared_by", sa.String(length=120), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_history_clearances_congregation_view",
        "history_clearances",
        ["district_code", "local_code", "view"],
    )

    # Audit trail
    op.create_table(
        "audit_log",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("actor_id", sa.String(length=120), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("table_name", sa.String(length=80), nullable=False),
        sa.Column("record_id", sa.String(length=36), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_table_record", "audit_log", ["table_name", "record_id"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_index("ix_audit_log_actor_id", table_name="audit_log")
    op.drop_index("ix_audit_log_table_record", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index(
        "ix_history_clearances_congregation_view", table_name="history_clearances"
    )
    op.drop_table("history_clearances")
    op.drop_index("ix_classification_changes_officer_id", table_name="classification_changes")
    op.drop_index(
        "ix_classification_changes_congregation", table_name="classification_changes"
    )
    op.drop_table("classification_changes")
    op.drop_index("ix_classification_baselines_lookup", table_name="classification_baselines")
    op.drop_table("classification_baselines")
    op.drop_table("headcount")
    op.drop_index("ix_removal_requests_status", table_name="removal_requests")
    op.drop_index("ix_removal_requests_officer_id", table_name="removal_requests")
    op.drop_table("removal_requests")
    op.drop_index("ix_officer_removals_week_year", table_name="officer_removals")
    op.drop_index("ix_officer_removals_officer_id", table_name="officer_removals")
    op.drop_table("officer_removals")
    op.drop_index("ix_transfers_from_local", table_name="transfers")
    op.drop_index("ix_transfers_to_local", table_name="transfers")
    op.drop_index("ix_transfers_week_year", table_name="transfers")
    op.drop_index("ix_transfers_officer_id", table_name="transfers")
    op.drop_table("transfers")
    op.drop_index("ix_department_assignments_officer_id", table_name="department_assignments")
    op.drop_table("department_assignments")
    op.drop_index("ix_officers_registry_number", table_name="officers")
    op.drop_index("ix_officers_status", table_name="officers")
    op.drop_index("ix_officers_district_local", table_name="officers")
    op.drop_table("officers")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
