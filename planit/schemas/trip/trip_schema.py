from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


class TripBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    destination: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    budget: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class TripCreate(TripBase):
    pass


class TripResponse(TripBase):
    id: str
    invite_code: str
    user_id: str
    created_at: Optional[datetime] = None
    participant_count: Optional[int] = None
    budget_per_person: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class TripContext(BaseModel):
    """The slice of a trip the activities board needs."""

    id: str
    currency: str

    model_config = {"from_attributes": True}
