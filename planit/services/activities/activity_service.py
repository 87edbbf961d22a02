"""Reads and writes behind the activities board.

Both the REST routes and ``VotingCoordinator`` go through these helpers, so
the vote upsert and the finalize rule live in one place.
"""

from typing import List, Optional, Sequence

from planit.core.exceptions import ActionBlockedError, RecordNotFoundError
from planit.core.logger import logger
from planit.models.activities.activity import ActivityStatus
from planit.schemas.activities.activity import ActivityCreate, ActivityOut, ActivityUpdate
from planit.schemas.activities.vote import VoteOut, VoterSummary
from planit.schemas.trip.trip_participant import ParticipantOut
from planit.schemas.trip.trip_schema import TripContext
from planit.services.activities.tally import count_votes, decide_outcome
from planit.services.persistence.base import Order, PersistenceService

# Date ascending with undated last; creation order breaks ties
ACTIVITY_ORDER = (Order("date"), Order("created_at"), Order("id"))
VOTE_ORDER = (Order("created_at"), Order("id"))


async def fetch_trip_context(persistence: PersistenceService, trip_id: str) -> TripContext:
    rows = await persistence.select("trips", {"id": trip_id})
    if not rows:
        raise RecordNotFoundError(f"trip {trip_id} not found")
    return TripContext.model_validate(rows[0])


async def fetch_participants(persistence: PersistenceService, trip_id: str) -> List[ParticipantOut]:
    rows = await persistence.select("trip_participants", {"trip_id": trip_id}, [Order("created_at")])
    return [ParticipantOut.model_validate(row) for row in rows]


async def fetch_activities(persistence: PersistenceService, trip_id: str) -> List[ActivityOut]:
    rows = await persistence.select("activities", {"trip_id": trip_id}, ACTIVITY_ORDER)
    return [ActivityOut.model_validate(row) for row in rows]


async def fetch_activity(persistence: PersistenceService, trip_id: str, activity_id: str) -> ActivityOut:
    rows = await persistence.select("activities", {"id": activity_id, "trip_id": trip_id})
    if not rows:
        raise RecordNotFoundError(f"activity {activity_id} not found in trip {trip_id}")
    return ActivityOut.model_validate(rows[0])


async def fetch_votes(persistence: PersistenceService, activity_ids: Sequence[str]) -> List[VoteOut]:
    """Votes on ``activity_ids`` with each voter's name and avatar attached."""
    if not activity_ids:
        return []
    rows = await persistence.select("activity_votes", {"activity_id": list(activity_ids)}, VOTE_ORDER)
    voter_ids = sorted({row["user_id"] for row in rows})
    voters = {}
    if voter_ids:
        voters = {
            user["id"]: VoterSummary.model_validate(user)
            for user in await persistence.select("users", {"id": voter_ids})
        }
    return [VoteOut.model_validate({**row, "voter": voters.get(row["user_id"])}) for row in rows]


async def create_activity(
    persistence: PersistenceService, trip_id: str, data: ActivityCreate, user_id: str
) -> ActivityOut:
    row = await persistence.insert("activities", data.to_record(trip_id, user_id))
    logger.info(f"Activity {row['id']} created in trip {trip_id} with status {row['status']}")
    return ActivityOut.model_validate(row)


async def update_activity(
    persistence: PersistenceService, activity_id: str, data: ActivityUpdate
) -> ActivityOut:
    row = await persistence.update("activities", {"id": activity_id}, data.to_patch())
    return ActivityOut.model_validate(row)


async def delete_activity(persistence: PersistenceService, activity_id: str) -> None:
    await persistence.delete("activities", {"id": activity_id})


def ensure_open_for_voting(activity: Optional[ActivityOut]) -> ActivityOut:
    if activity is None:
        raise RecordNotFoundError("activity not found")
    if activity.status != ActivityStatus.voting:
        raise ActionBlockedError(f"activity {activity.id} is not open for voting")
    return activity


async def upsert_vote(
    persistence: PersistenceService,
    activity_id: str,
    user_id: str,
    value: bool,
    existing: Optional[VoteOut] = None,
) -> VoteOut:
    """Record ``user_id``'s vote, updating their row when one exists.

    ``existing`` is the caller's cached copy. Without one the store is asked
    first, so a stale cache never produces a second row for the same user.
    """
    if existing is None:
        rows = await persistence.select("activity_votes", {"activity_id": activity_id, "user_id": user_id})
        existing = VoteOut.model_validate(rows[0]) if rows else None

    if existing is not None:
        row = await persistence.update("activity_votes", {"id": existing.id}, {"vote": value})
    else:
        row = await persistence.insert(
            "activity_votes", {"activity_id": activity_id, "user_id": user_id, "vote": value}
        )
    logger.info(f"User {user_id} voted {'yes' if value else 'no'} on activity {activity_id}")
    return VoteOut.model_validate(row)


def finalize_outcome(activity: ActivityOut, votes: Sequence[VoteOut]) -> ActivityStatus:
    """Status ``activity`` moves to when finalized; raises when finalizing is blocked."""
    if activity.status != ActivityStatus.voting:
        raise ActionBlockedError(f"activity {activity.id} is not in voting")
    relevant = [vote for vote in votes if vote.activity_id == activity.id]
    if not relevant:
        raise ActionBlockedError(f"activity {activity.id} has no votes to finalize")
    yes, no = count_votes(relevant)
    return decide_outcome(yes, no)


async def finalize_activity(
    persistence: PersistenceService, activity: ActivityOut, votes: Sequence[VoteOut]
) -> ActivityOut:
    outcome = finalize_outcome(activity, votes)
    row = await persistence.update("activities", {"id": activity.id}, {"status": outcome})
    logger.info(f"Activity {activity.id} finalized as {outcome.value}")
    return ActivityOut.model_validate(row)
