from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.classification import BaselinePeriod, BaselineScope, HistoryView
from app.models.registry import Classification


class ManualClassificationUpdate(BaseModel):
    # None clears the override
    classification: Classification | None = None
    reason: str | None = Field(default=None, max_length=500)


class BaselineResetRequest(BaseModel):
    classification: BaselineScope = BaselineScope.all
    period: Literal["week", "month", "both"] = "both"
    district_code: str | None = None
    local_code: str | None = None


class BaselineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    district_code: str
    local_code: str
    classification: BaselineScope
    period: BaselinePeriod
    reset_at: datetime
    reset_by: str | None = None


class ClassificationDelta(BaseModel):
    classification: Classification
    period: BaselinePeriod
    baseline_at: datetime
    baseline_source: Literal["classification", "all", "default"]
    added: int
    removed: int
    net: int


class ClassificationChangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    officer_id: UUID
    district_code: str
    local_code: str
    previous_classification: Classification | None = None
    new_classification: Classification | None = None
    auto_classification: Classification | None = None
    reason: str | None = None
    changed_by: str | None = None
    changed_at: datetime


class UpcomingPromotion(BaseModel):
    officer_id: UUID
    ref_no: str
    full_name: str
    birthdate: date
    age: int
    promotion_date: date
    days_until: int


class HistoryClearanceCreate(BaseModel):
    view: HistoryView
    district_code: str | None = None
    local_code: str | None = None


class HistoryClearanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    district_code: str
    local_code: str
    view: HistoryView
    cleared_at: datetime
    cleared_by: str | None = None
