"""Holiday Pydantic schemas.

Dates are accepted as raw strings so the service can report
``invalid-date-format`` instead of a generic 422.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class HolidayCreate(BaseModel):
    date: Optional[str] = None
    name: Optional[str] = None


class HolidayUpdate(BaseModel):
    date: Optional[str] = None
    name: Optional[str] = None


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: date
    name: str
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class HolidayMutationResult(BaseModel):
    """Holiday plus the number of approved leaves the change auto-rejected."""

    holiday: HolidayOut
    auto_rejected_leaves: int = 0
