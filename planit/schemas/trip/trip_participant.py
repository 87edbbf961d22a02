from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class ParticipantCreate(BaseModel):
    user_id: str
    is_owner: bool = False


class ParticipantOut(BaseModel):
    id: str
    trip_id: str
    user_id: str
    is_owner: bool
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ParticipantListResponse(BaseModel):
    participants: List[ParticipantOut]
