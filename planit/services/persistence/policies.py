"""Row-level access rules applied by ``SqlPersistence``.

These mirror the policies a hosted Postgres would enforce: the activities
board trusts this layer to reject non-owner finalizes and foreign edits.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planit.core.exceptions import PermissionDeniedError, InvalidRecordError, RecordNotFoundError
from planit.models.activities.activity import Activity, ActivityStatus
from planit.models.trips.trip_model import Trip
from planit.models.trips.trip_participant import TripParticipant
from planit.services.persistence.base import Record

# Columns a patch may never rewrite
IMMUTABLE_COLUMNS = {
    "users": {"id"},
    "trips": {"id", "user_id"},
    "trip_participants": {"id", "trip_id", "user_id"},
    "activities": {"id", "trip_id", "created_by"},
    "activity_votes": {"id", "activity_id", "user_id"},
}


async def memberships(session: AsyncSession, user_id: str) -> Dict[str, bool]:
    """Map of trip id -> owner flag for every trip the user participates in."""
    result = await session.execute(
        select(TripParticipant.trip_id, TripParticipant.is_owner).where(TripParticipant.user_id == user_id)
    )
    return {row.trip_id: bool(row.is_owner) for row in result.all()}


async def activity_trips(session: AsyncSession, activity_ids: Iterable[str]) -> Dict[str, str]:
    ids = list(set(activity_ids))
    if not ids:
        return {}
    result = await session.execute(select(Activity.id, Activity.trip_id).where(Activity.id.in_(ids)))
    return {row.id: row.trip_id for row in result.all()}


async def trip_id_of(session: AsyncSession, table: str, row: Record) -> Optional[str]:
    if table == "trips":
        return row.get("id")
    if table in ("trip_participants", "activities"):
        return row.get("trip_id")
    if table == "activity_votes":
        mapping = await activity_trips(session, [row["activity_id"]])
        return mapping.get(row["activity_id"])
    return None


class RowPolicy:
    def __init__(self, actor_id: str):
        self.actor_id = actor_id

    def _deny(self, table: str, action: str):
        raise PermissionDeniedError(f"{action} on {table} not allowed for user {self.actor_id}")

    async def filter_visible(self, session: AsyncSession, table: str, rows: List[Record]) -> List[Record]:
        if table == "users" or not rows:
            return rows
        trips = await memberships(session, self.actor_id)
        if table == "trips":
            return [row for row in rows if row["id"] in trips]
        if table == "activity_votes":
            mapping = await activity_trips(session, [row["activity_id"] for row in rows])
            return [row for row in rows if mapping.get(row["activity_id"]) in trips]
        return [row for row in rows if row["trip_id"] in trips]

    async def check_insert(self, session: AsyncSession, table: str, record: Record) -> None:
        if table == "users":
            if record.get("id") != self.actor_id:
                self._deny(table, "insert")
            return
        if table == "trips":
            if record.get("user_id") != self.actor_id:
                self._deny(table, "insert")
            return

        trips = await memberships(session, self.actor_id)
        if table == "trip_participants":
            trip = await session.get(Trip, record.get("trip_id"))
            if trip is None:
                raise RecordNotFoundError(f"trip {record.get('trip_id')} not found")
            # The creator seeds the owner row; afterwards only owners add people
            bootstrapping = trip.user_id == self.actor_id and record.get("user_id") == self.actor_id
            if not (trips.get(trip.id) or bootstrapping):
                self._deny(table, "insert")
            return
        if table == "activities":
            if record.get("trip_id") not in trips or record.get("created_by") != self.actor_id:
                self._deny(table, "insert")
            return
        if table == "activity_votes":
            if record.get("user_id") != self.actor_id:
                self._deny(table, "insert")
            await self._check_vote_target(session, record.get("activity_id"), trips)
            return
        self._deny(table, "insert")

    async def check_update(self, session: AsyncSession, table: str, row: Record, patch: Record) -> None:
        frozen = IMMUTABLE_COLUMNS.get(table, set()) & set(patch)
        if frozen:
            raise InvalidRecordError(f"cannot change {', '.join(sorted(frozen))} on {table}")
        await self._check_owner_or_self(session, table, row, "update")
        if table == "activities" and self._closes_voting(row, patch):
            # Deciding a vote is an owner call, even for the activity's creator
            trips = await memberships(session, self.actor_id)
            if not trips.get(row["trip_id"]):
                self._deny(table, "finalize")

    @staticmethod
    def _closes_voting(row: Record, patch: Record) -> bool:
        new_status = patch.get("status")
        if new_status is None or row.get("status") != ActivityStatus.voting.value:
            return False
        return ActivityStatus(new_status) != ActivityStatus.voting

    async def check_delete(self, session: AsyncSession, table: str, row: Record) -> None:
        await self._check_owner_or_self(session, table, row, "delete")

    async def _check_owner_or_self(self, session: AsyncSession, table: str, row: Record, action: str) -> None:
        if table == "users":
            if row["id"] != self.actor_id:
                self._deny(table, action)
            return

        trips = await memberships(session, self.actor_id)
        if table == "trips":
            if not trips.get(row["id"]):
                self._deny(table, action)
            return
        if table == "trip_participants":
            leaving = action == "delete" and row["user_id"] == self.actor_id
            if not (trips.get(row["trip_id"]) or leaving):
                self._deny(table, action)
            return
        if table == "activities":
            if row["created_by"] != self.actor_id and not trips.get(row["trip_id"]):
                self._deny(table, action)
            return
        if table == "activity_votes":
            if row["user_id"] != self.actor_id:
                self._deny(table, action)
            if action == "update":
                await self._check_vote_target(session, row["activity_id"], trips)
            return
        self._deny(table, action)

    async def _check_vote_target(self, session: AsyncSession, activity_id: Optional[str], trips: Dict[str, bool]) -> None:
        activity = await session.get(Activity, activity_id) if activity_id else None
        if activity is None:
            raise RecordNotFoundError(f"activity {activity_id} not found")
        if activity.trip_id not in trips:
            self._deny("activity_votes", "vote")
        if activity.status != ActivityStatus.voting:
            raise PermissionDeniedError(f"activity {activity_id} is not open for voting")
