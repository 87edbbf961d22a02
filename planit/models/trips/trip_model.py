from sqlalchemy import Column, String, Date, ForeignKey, DateTime, Numeric, Text
from sqlalchemy.orm import relationship
from planit.core.database import Base
from planit.models.base import new_id, utcnow
import uuid


class Trip(Base):
    __tablename__ = "trips"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    budget = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    invite_code = Column(String, unique=True, index=True, default=lambda: str(uuid.uuid4())[:8])
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    participants = relationship("TripParticipant", back_populates="trip", cascade="all, delete")
    activities = relationship("Activity", back_populates="trip", cascade="all, delete")

    def to_dict(self):
        """Convert Trip instance to dictionary for caching"""
        return {
            "id": self.id,
            "name": self.name,
            "destination": self.destination,
            "description": self.description,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "budget": str(self.budget) if self.budget is not None else None,
            "currency": self.currency,
            "user_id": self.user_id,
            "invite_code": self.invite_code,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
