from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from planit.core.database import Base
from planit.models.base import new_id, utcnow


class TripParticipant(Base):
    __tablename__ = "trip_participants"

    id = Column(String(36), primary_key=True, default=new_id)
    trip_id = Column(String(36), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_owner = Column(Boolean, nullable=False, default=False)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # To ensure no duplicate participants in a trip
    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_trip_participant_user"),
        Index("ix_trip_participants_trip_id", "trip_id"),
    )

    trip = relationship("Trip", back_populates="participants")
    user = relationship("User", back_populates="trips")

    def to_dict(self):
        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "user_id": self.user_id,
            "is_owner": self.is_owner,
            "last_active_at": self.last_active_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
