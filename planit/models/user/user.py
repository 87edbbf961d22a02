from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from planit.core.database import Base
from planit.models.base import new_id, utcnow


class User(Base):
    """Profile row for an authenticated user. Credentials live with the auth provider."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=True)
    full_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    trips = relationship("TripParticipant", back_populates="user", cascade="all, delete")

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at,
        }
