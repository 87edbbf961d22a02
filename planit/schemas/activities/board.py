from pydantic import BaseModel
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional
from planit.schemas.activities.activity import ActivityOut
from planit.schemas.activities.vote import UserVote, VoteOut, VoteTally


class SortOrder(str, Enum):
    date_asc = "date_asc"
    date_desc = "date_desc"
    name_asc = "name_asc"
    name_desc = "name_desc"
    category = "category"


class BoardQuery(BaseModel):
    search: str = ""
    status: Literal["all", "confirmed", "pending", "voting"] = "all"
    category: Literal["all", "adventure", "food", "sightseeing", "other"] = "all"
    sort: SortOrder = SortOrder.date_asc
    group_by_date: bool = False


class ActivityCard(BaseModel):
    activity: ActivityOut
    votes: List[VoteOut]
    tally: VoteTally
    user_vote: UserVote
    cost_display: Optional[str] = None
    cost_per_person: Optional[Decimal] = None
    cost_per_person_display: Optional[str] = None
    can_edit: bool
    can_finalize: bool


class ActivityGroup(BaseModel):
    # ISO date, or "unscheduled"
    key: str
    cards: List[ActivityCard]


class ActivityBoard(BaseModel):
    trip_id: str
    currency: str
    participant_count: int
    is_owner: bool
    total: int
    cards: List[ActivityCard] = []
    groups: Optional[List[ActivityGroup]] = None


class Notice(BaseModel):
    """User-facing outcome of an action, shown as a toast."""

    ok: bool
    title: str
    description: str
