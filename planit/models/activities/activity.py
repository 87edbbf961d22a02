from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Time, Text, Numeric, Float, Enum, Index
from sqlalchemy.orm import relationship
from planit.core.database import Base
from planit.models.base import new_id, utcnow
import enum


class ActivityCategory(str, enum.Enum):
    adventure = "adventure"
    food = "food"
    sightseeing = "sightseeing"
    other = "other"


class ActivityStatus(str, enum.Enum):
    confirmed = "confirmed"
    pending = "pending"
    voting = "voting"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=new_id)
    trip_id = Column(String(36), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    location = Column(String, nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    external_url = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    cost = Column(Numeric(12, 2), nullable=True)

    activity_category_enum = Enum(
        ActivityCategory,
        name="activity_category_type",
        values_callable=lambda obj: [e.value for e in obj],
    )
    activity_status_enum = Enum(
        ActivityStatus,
        name="activity_status_type",
        values_callable=lambda obj: [e.value for e in obj],
    )
    category = Column(activity_category_enum, nullable=False, default=ActivityCategory.other)
    status = Column(activity_status_enum, nullable=False, default=ActivityStatus.pending)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    trip = relationship("Trip", back_populates="activities")
    votes = relationship("ActivityVote", back_populates="activity", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_activities_trip_id", "trip_id"),
        Index("ix_activities_date", "date"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "location": self.location,
            "location_lat": self.location_lat,
            "location_lng": self.location_lng,
            "external_url": self.external_url,
            "image_url": self.image_url,
            "cost": self.cost,
            "category": self.category.value if self.category else None,
            "status": self.status.value if self.status else None,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
