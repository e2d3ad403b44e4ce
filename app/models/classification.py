import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.registry import Classification


class BaselineScope(enum.Enum):
    child = "child"
    youth = "youth"
    adult = "adult"
    all = "all"


class BaselinePeriod(enum.Enum):
    week = "week"
    month = "month"


class HistoryView(enum.Enum):
    transfer_out = "transfer_out"
    classification_changes = "classification_changes"


# ---------------------------------------------------------------------------
# Classification Baselines (insert-only; latest row per scope/period wins)
# ---------------------------------------------------------------------------


class ClassificationBaseline(Base):
    __tablename__ = "classification_baselines"
    __table_args__ = (
        Index(
            "ix_classification_baselines_lookup",
            "district_code",
            "local_code",
            "classification",
            "period",
            "reset_at",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    district_code: Mapped[str] = mapped_column(String(40), nullable=False)
    local_code: Mapped[str] = mapped_column(String(40), nullable=False)
    classification: Mapped[BaselineScope] = mapped_column(
        Enum(BaselineScope), nullable=False
    )
    period: Mapped[BaselinePeriod] = mapped_column(
        Enum(BaselinePeriod), nullable=False
    )
    reset_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    reset_by: Mapped[str | None] = mapped_column(String(120))


# ---------------------------------------------------------------------------
# Classification Changes (separate from the audit trail)
# ---------------------------------------------------------------------------


class ClassificationChange(Base):
    __tablename__ = "classification_changes"
    __table_args__ = (
        Index(
            "ix_classification_changes_congregation", "district_code", "local_code"
        ),
        Index("ix_classification_changes_officer_id", "officer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("officers.id"), nullable=False
    )
    district_code: Mapped[str] = mapped_column(String(40), nullable=False)
    local_code: Mapped[str] = mapped_column(String(40), nullable=False)
    previous_classification: Mapped[Classification | None] = mapped_column(
        Enum(Classification)
    )
    new_classification: Mapped[Classification | None] = mapped_column(
        Enum(Classification)
    )
    auto_classification: Mapped[Classification | None] = mapped_column(
        Enum(Classification)
    )
    reason: Mapped[str | None] = mapped_column(Text)
    changed_by: Mapped[str | None] = mapped_column(String(120))
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    officer = relationship("Officer")


# ---------------------------------------------------------------------------
# History Clearances (hide rows from a report list, never delete them)
# ---------------------------------------------------------------------------


class HistoryClearance(Base):
    __tablename__ = "history_clearances"
    __table_args__ = (
        Index(
            "ix_history_clearances_congregation_view",
            "district_code",
            "local_code",
            "view",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    district_code: Mapped[str] = mapped_column(String(40), nullable=False)
    local_code: Mapped[str] = mapped_column(String(40), nullable=False)
    view: Mapped[HistoryView] = mapped_column(Enum(HistoryView), nullable=False)
    cleared_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    cleared_by: Mapped[str | None] = mapped_column(String(120))
