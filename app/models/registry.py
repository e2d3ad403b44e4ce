import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OfficerStatus(enum.Enum):
    active = "active"
    transferred_out = "transferred_out"
    removed = "removed"


class Classification(enum.Enum):
    child = "child"
    youth = "youth"
    adult = "adult"


class TransferDirection(enum.Enum):
    transfer_in = "in"
    transfer_out = "out"


class RemovalCode(enum.Enum):
    deceased = "deceased"
    suspended = "suspended"
    voluntary_departure = "voluntary_departure"
    administrative_correction = "administrative_correction"
    group_transfer = "group_transfer"


class RemovalRequestStatus(enum.Enum):
    deliberated = "deliberated"
    requested = "requested"
    approved = "approved"
    cancelled = "cancelled"


# ---------------------------------------------------------------------------
# Officers
# ---------------------------------------------------------------------------


class Officer(Base):
    __tablename__ = "officers"
    __table_args__ = (
        UniqueConstraint("ref_no", name="uq_officers_ref_no"),
        Index("ix_officers_district_local", "district_code", "local_code"),
        Index("ix_officers_status", "status"),
        Index("ix_officers_registry_number", "district_code", "registry_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    ref_no: Mapped[str] = mapped_column(
        String(32), nullable=False, default=lambda: uuid.uuid4().hex[:12].upper()
    )
    district_code: Mapped[str] = mapped_column(String(40), nullable=False)
    local_code: Mapped[str] = mapped_column(String(40), nullable=False)
    purok: Mapped[str | None] = mapped_column(String(80))
    grupo: Mapped[str | None] = mapped_column(String(80))

    # Encrypted with the district key; never stored in plaintext
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    middle_initial: Mapped[str | None] = mapped_column(Text)
    birthdate: Mapped[str | None] = mapped_column(Text)
    control_number: Mapped[str | None] = mapped_column(Text)
    registry_number: Mapped[str | None] = mapped_column(String(255))

    marriage_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[OfficerStatus] = mapped_column(
        Enum(OfficerStatus), nullable=False, default=OfficerStatus.active
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    transfer_out_date: Mapped[date | None] = mapped_column(Date)

    classification_auto: Mapped[Classification | None] = mapped_column(
        Enum(Classification)
    )
    classification_manual: Mapped[Classification | None] = mapped_column(
        Enum(Classification)
    )

    created_by: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    departments = relationship(
        "DepartmentAssignment",
        back_populates="officer",
        order_by="DepartmentAssignment.created_at",
    )
    transfers = relationship("Transfer", back_populates="officer")
    removals = relationship("OfficerRemoval", back_populates="officer")

    @property
    def effective_classification(self) -> Classification | None:
        return self.classification_manual or self.classification_auto

    @property
    def active_departments(self) -> list["DepartmentAssignment"]:
        return [dept for dept in self.departments if dept.is_active]


# ---------------------------------------------------------------------------
# Department Assignments
# ---------------------------------------------------------------------------


class DepartmentAssignment(Base):
    __tablename__ = "department_assignments"
    __table_args__ = (
        Index("ix_department_assignments_officer_id", "officer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officers.id"), nullable=False
    )
    department: Mapped[str] = mapped_column(String(120), nullable=False)
    duty: Mapped[str | None] = mapped_column(String(255))
    oath_date: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    officer = relationship("Officer", back_populates="departments")


# ---------------------------------------------------------------------------
# Transfer Ledger (append-only, no updated_at)
# ---------------------------------------------------------------------------


class Transfer(Base):
    __tablename__ = "transfers"
    __table_args__ = (
        Index("ix_transfers_officer_id", "officer_id"),
        Index("ix_transfers_week_year", "year", "week"),
        Index("ix_transfers_to_local", "to_local"),
        Index("ix_transfers_from_local", "from_local"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officers.id"), nullable=False
    )
    direction: Mapped[TransferDirection] = mapped_column(
        Enum(
            TransferDirection,
            name="transferdirection",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    # The side outside this registry's authority is free text
    from_district: Mapped[str | None] = mapped_column(String(255))
    from_local: Mapped[str | None] = mapped_column(String(255))
    to_district: Mapped[str | None] = mapped_column(String(255))
    to_local: Mapped[str | None] = mapped_column(String(255))
    department: Mapped[str | None] = mapped_column(String(120))
    duty: Mapped[str | None] = mapped_column(String(255))
    oath_date: Mapped[date | None] = mapped_column(Date)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    processed_by: Mapped[str | None] = mapped_column(String(120))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    officer = relationship("Officer", back_populates="transfers")


# ---------------------------------------------------------------------------
# Removal Ledger (append-only, no updated_at)
# ---------------------------------------------------------------------------


class OfficerRemoval(Base):
    __tablename__ = "officer_removals"
    __table_args__ = (
        Index("ix_officer_removals_officer_id", "officer_id"),
        Index("ix_officer_removals_week_year", "year", "week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officers.id"), nullable=False
    )
    department_assignment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("department_assignments.id")
    )
    removal_code: Mapped[RemovalCode] = mapped_column(
        Enum(RemovalCode), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text)
    department: Mapped[str | None] = mapped_column(String(120))
    duty: Mapped[str | None] = mapped_column(String(255))
    removal_date: Mapped[date] = mapped_column(Date, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    processed_by: Mapped[str | None] = mapped_column(String(120))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    officer = relationship("Officer", back_populates="removals")
    department_assignment = relationship("DepartmentAssignment")


# ---------------------------------------------------------------------------
# Removal Requests (deliberation workflow)
# ---------------------------------------------------------------------------


class RemovalRequest(Base):
    __tablename__ = "removal_requests"
    __table_args__ = (
        Index("ix_removal_requests_officer_id", "officer_id"),
        Index("ix_removal_requests_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officers.id"), nullable=False
    )
    department_assignment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("department_assignments.id")
    )
    removal_code: Mapped[RemovalCode] = mapped_column(
        Enum(RemovalCode), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text)
    removal_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[RemovalRequestStatus] = mapped_column(
        Enum(RemovalRequestStatus),
        nullable=False,
        default=RemovalRequestStatus.deliberated,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    deliberated_by: Mapped[str | None] = mapped_column(String(120))
    requested_by: Mapped[str | None] = mapped_column(String(120))
    requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(String(120))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    removal_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officer_removals.id")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    officer = relationship("Officer")
    department_assignment = relationship("DepartmentAssignment")
    removal = relationship("OfficerRemoval")


# ---------------------------------------------------------------------------
# Headcount Aggregate
# ---------------------------------------------------------------------------


class Headcount(Base):
    __tablename__ = "headcount"
    __table_args__ = (
        UniqueConstraint(
            "district_code", "local_code", name="uq_headcount_district_local"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    district_code: Mapped[str] = mapped_column(String(40), nullable=False)
    local_code: Mapped[str] = mapped_column(String(40), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
