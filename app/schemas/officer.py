from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.registry import Classification, OfficerStatus


# ---------------------------------------------------------------------------
# Department Assignment
# ---------------------------------------------------------------------------


class DepartmentInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    department: str = Field(min_length=1, max_length=120)
    duty: str | None = Field(default=None, max_length=255)
    oath_date: date


class DepartmentAssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    department: str
    duty: str | None = None
    oath_date: date | None = None
    is_active: bool
    removed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Officer
# ---------------------------------------------------------------------------


class OfficerFields(BaseModel):
    """Plaintext personal fields; encrypted with the district key on write."""

    model_config = ConfigDict(str_strip_whitespace=True)

    last_name: str = Field(min_length=1, max_length=120)
    first_name: str = Field(min_length=1, max_length=120)
    middle_initial: str | None = Field(default=None, max_length=10)
    birthdate: date | None = None
    marriage_date: date | None = None
    purok: str | None = Field(default=None, max_length=80)
    grupo: str | None = Field(default=None, max_length=80)
    control_number: str | None = Field(default=None, max_length=120)
    registry_number: str | None = Field(default=None, max_length=120)


class OfficerCreate(OfficerFields):
    district_code: str = Field(min_length=1, max_length=40)
    local_code: str = Field(min_length=1, max_length=40)
    department: DepartmentInput


class BirthdateUpdate(BaseModel):
    birthdate: date | None = None


class MergeRequest(BaseModel):
    duplicate_ids: list[UUID] = Field(min_length=1)


class MergeResult(BaseModel):
    primary_id: UUID
    merged_count: int


class OfficerRead(BaseModel):
    """Decrypted view; undecryptable fields carry a placeholder."""

    id: UUID
    ref_no: str
    district_code: str
    local_code: str
    purok: str | None = None
    grupo: str | None = None
    last_name: str | None = None
    first_name: str | None = None
    middle_initial: str | None = None
    birthdate: str | None = None
    control_number: str | None = None
    registry_number: str | None = None
    marriage_date: date | None = None
    status: OfficerStatus
    is_active: bool
    transfer_out_date: date | None = None
    classification_auto: Classification | None = None
    classification_manual: Classification | None = None
    effective_classification: Classification | None = None
    departments: list[DepartmentAssignmentRead] = []
    created_at: datetime
    updated_at: datetime
