from pydantic import BaseModel, Field, HttpUrl, field_validator
from datetime import date as dt_date, datetime, time as dt_time
from decimal import Decimal
from typing import Optional
from planit.models.activities.activity import ActivityCategory, ActivityStatus


class ActivityFields(BaseModel):
    title: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = None
    date: Optional[dt_date] = None
    start_time: Optional[dt_time] = None
    end_time: Optional[dt_time] = None
    location: Optional[str] = None
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    category: ActivityCategory = ActivityCategory.other
    cost: Optional[Decimal] = Field(None, ge=0)
    external_url: Optional[HttpUrl] = None
    image_url: Optional[str] = None

    @field_validator("description", "location", "external_url", "image_url", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        # Empty form inputs arrive as ""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ActivityCreate(ActivityFields):
    require_voting: bool = False

    def to_record(self, trip_id: str, created_by: str) -> dict:
        record = self.model_dump(exclude={"require_voting"})
        if record["external_url"] is not None:
            record["external_url"] = str(record["external_url"])
        record["trip_id"] = trip_id
        record["created_by"] = created_by
        record["status"] = ActivityStatus.voting if self.require_voting else ActivityStatus.pending
        return record


class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    date: Optional[dt_date] = None
    start_time: Optional[dt_time] = None
    end_time: Optional[dt_time] = None
    location: Optional[str] = None
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    category: Optional[ActivityCategory] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    external_url: Optional[HttpUrl] = None
    image_url: Optional[str] = None
    status: Optional[ActivityStatus] = None

    @field_validator("title", "category", "status")
    @classmethod
    def not_null(cls, value, info):
        # Optional in a patch means "leave as is", never "clear"
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    def to_patch(self) -> dict:
        patch = self.model_dump(exclude_unset=True)
        if patch.get("external_url") is not None:
            patch["external_url"] = str(patch["external_url"])
        return patch


class ActivityOut(BaseModel):
    id: str
    trip_id: str
    title: str
    description: Optional[str] = None
    date: Optional[dt_date] = None
    start_time: Optional[dt_time] = None
    end_time: Optional[dt_time] = None
    location: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    external_url: Optional[str] = None
    image_url: Optional[str] = None
    cost: Optional[Decimal] = None
    category: ActivityCategory
    status: ActivityStatus
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
