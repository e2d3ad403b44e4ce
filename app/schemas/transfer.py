from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.registry import TransferDirection
from app.schemas.officer import OfficerFields


class TransferInRequest(OfficerFields):
    from_district: str | None = Field(default=None, max_length=255)
    from_local: str | None = Field(default=None, max_length=255)
    to_district_code: str = Field(min_length=1, max_length=40)
    to_local_code: str = Field(min_length=1, max_length=40)
    department: str = Field(min_length=1, max_length=120)
    duty: str | None = Field(default=None, max_length=255)
    oath_date: date
    transfer_date: date = Field(default_factory=date.today)
    notes: str | None = None


class TransferOutRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    officer_id: UUID
    to_district: str = Field(min_length=1, max_length=255)
    to_local: str = Field(min_length=1, max_length=255)
    transfer_date: date = Field(default_factory=date.today)
    notes: str | None = None


class TransferRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    officer_id: UUID
    direction: TransferDirection
    from_district: str | None = None
    from_local: str | None = None
    to_district: str | None = None
    to_local: str | None = None
    department: str | None = None
    duty: str | None = None
    oath_date: date | None = None
    transfer_date: date
    week: int
    year: int
    processed_by: str | None = None
    notes: str | None = None
    created_at: datetime


class TransferInResult(BaseModel):
    officer_id: UUID
    ref_no: str
    transfer: TransferRead
    headcount: int


class WeeklySummaryRow(BaseModel):
    local_code: str
    transfers_in: int
    transfers_out: int
