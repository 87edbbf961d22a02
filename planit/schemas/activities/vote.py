from pydantic import BaseModel, StrictBool
from datetime import datetime
from typing import Optional


class VoteRequest(BaseModel):
    value: StrictBool


class VoterSummary(BaseModel):
    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class VoteOut(BaseModel):
    id: str
    activity_id: str
    user_id: str
    vote: bool
    voter: Optional[VoterSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserVote(BaseModel):
    has_voted: bool
    vote: Optional[bool] = None


class VoteTally(BaseModel):
    yes: int
    no: int
    total: int
    participants: int
    percentage: int
