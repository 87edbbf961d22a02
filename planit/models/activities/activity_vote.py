from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from planit.core.database import Base
from planit.models.base import new_id, utcnow


class ActivityVote(Base):
    __tablename__ = "activity_votes"

    id = Column(String(36), primary_key=True, default=new_id)
    activity_id = Column(String(36), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    vote = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    activity = relationship("Activity", back_populates="votes")
    user = relationship("User")

    # One vote per user per activity; a second vote is an update of this row
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="uq_activity_vote_user"),
        Index("ix_activity_votes_activity_id", "activity_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "user_id": self.user_id,
            "vote": self.vote,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
