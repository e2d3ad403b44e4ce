from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HeadcountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    district_code: str
    local_code: str
    total_count: int
    last_updated: datetime | None = None
