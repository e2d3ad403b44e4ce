from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.registry import RemovalCode, RemovalRequestStatus


# ---------------------------------------------------------------------------
# OfficerRemoval
# ---------------------------------------------------------------------------


class RemovalCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    officer_id: UUID
    removal_code: RemovalCode
    reason: str | None = None
    removal_date: date = Field(default_factory=date.today)


class RemovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    officer_id: UUID
    department_assignment_id: UUID | None = None
    removal_code: RemovalCode
    reason: str | None = None
    department: str | None = None
    duty: str | None = None
    removal_date: date
    week: int
    year: int
    processed_by: str | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# RemovalRequest
# ---------------------------------------------------------------------------


class RemovalRequestCreate(RemovalCreate):
    department_assignment_id: UUID | None = None


class RemovalRequestAction(BaseModel):
    notes: str | None = None


class RemovalRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    officer_id: UUID
    department_assignment_id: UUID | None = None
    removal_code: RemovalCode
    reason: str | None = None
    removal_date: date
    status: RemovalRequestStatus
    notes: str | None = None
    deliberated_by: str | None = None
    requested_by: str | None = None
    requested_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    removal_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
