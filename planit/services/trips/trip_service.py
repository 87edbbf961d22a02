from typing import Any, Dict, List, Optional
from planit.core.cache import RedisCache
from planit.core.config import settings
from planit.core.exceptions import RecordNotFoundError
from planit.core.logger import logger
from planit.schemas.trip.trip_participant import ParticipantCreate, ParticipantOut
from planit.schemas.trip.trip_schema import TripCreate, TripResponse
from planit.services.activities.tally import cost_per_person
from planit.services.persistence.base import Order, PersistenceService


def _with_headcount(trip: Dict[str, Any], participant_count: int) -> TripResponse:
    response = TripResponse.model_validate(trip)
    response.participant_count = participant_count
    response.budget_per_person = cost_per_person(response.budget, participant_count)
    return response


class TripService:
    def __init__(self, cache: RedisCache):
        self.cache = cache

    async def _invalidate_trip_caches(self, trip_id: str, user_id: Optional[str] = None):
        """Invalidate all caches related to a trip"""
        await self.cache.delete(self.cache.build_key("trips", "id", trip_id))
        if user_id:
            await self.cache.delete_pattern(f"trips:user:{user_id}*")

    async def _ensure_participant(self, persistence: PersistenceService, trip_id: str, user_id: str) -> None:
        rows = await persistence.select("trip_participants", {"trip_id": trip_id, "user_id": user_id})
        if not rows:
            logger.warning(f"Trip {trip_id} requested by non-participant {user_id}")
            raise RecordNotFoundError("Trip not found")

    async def create_trip(self, persistence: PersistenceService, trip_data: TripCreate, user_id: str) -> TripResponse:
        record = trip_data.model_dump()
        record["currency"] = record["currency"].upper()
        trip = await persistence.insert("trips", {**record, "user_id": user_id})

        # The creator is the first owner
        await persistence.insert(
            "trip_participants", {"trip_id": trip["id"], "user_id": user_id, "is_owner": True}
        )
        await self._invalidate_trip_caches(trip["id"], user_id)

        logger.info(f"Trip {trip['id']} created by user {user_id} with invite code {trip['invite_code']}")
        return _with_headcount(trip, 1)

    async def get_trip(self, persistence: PersistenceService, trip_id: str, user_id: str) -> TripResponse:
        await self._ensure_participant(persistence, trip_id, user_id)
        # Headcount changes with every join, so it is never cached
        participants = await persistence.select("trip_participants", {"trip_id": trip_id})

        cache_key = self.cache.build_key("trips", "id", trip_id)
        cached_trip = await self.cache.get(cache_key)
        if cached_trip:
            logger.info(f"Trip {trip_id} retrieved from cache")
            return _with_headcount(cached_trip, len(participants))

        rows = await persistence.select("trips", {"id": trip_id})
        if not rows:
            raise RecordNotFoundError("Trip not found")

        await self.cache.set(cache_key, rows[0], expire=settings.TRIP_CACHE_TTL_SECONDS)
        logger.info(f"Trip {trip_id} retrieved from database")
        return _with_headcount(rows[0], len(participants))

    async def get_user_trips(self, persistence: PersistenceService, user_id: str) -> List[TripResponse]:
        memberships = await persistence.select("trip_participants", {"user_id": user_id})
        trip_ids = [row["trip_id"] for row in memberships]
        if not trip_ids:
            return []
        rows = await persistence.select("trips", {"id": trip_ids}, [Order("start_date")])
        return [TripResponse.model_validate(row) for row in rows]

    async def list_participants(self, persistence: PersistenceService, trip_id: str, user_id: str) -> List[ParticipantOut]:
        await self._ensure_participant(persistence, trip_id, user_id)
        rows = await persistence.select("trip_participants", {"trip_id": trip_id}, [Order("created_at")])
        return [ParticipantOut.model_validate(row) for row in rows]

    async def add_participant(self, persistence: PersistenceService, trip_id: str, data: ParticipantCreate) -> ParticipantOut:
        row = await persistence.insert(
            "trip_participants", {"trip_id": trip_id, "user_id": data.user_id, "is_owner": data.is_owner}
        )
        await self._invalidate_trip_caches(trip_id, data.user_id)
        logger.info(f"User {data.user_id} joined trip {trip_id}")
        return ParticipantOut.model_validate(row)

    async def join_trip(self, system: PersistenceService, invite_code: str, user_id: str) -> ParticipantOut:
        """Add ``user_id`` to the trip behind ``invite_code``.

        ``system`` must be the trusted service context: the caller is not a
        participant yet, so row policies would hide the trip from them.
        Joining twice returns the existing membership.
        """
        trips = await system.select("trips", {"invite_code": invite_code})
        if not trips:
            logger.warning(f"User {user_id} tried unknown invite code {invite_code}")
            raise RecordNotFoundError("Invalid invite code")
        trip_id = trips[0]["id"]

        existing = await system.select("trip_participants", {"trip_id": trip_id, "user_id": user_id})
        if existing:
            return ParticipantOut.model_validate(existing[0])

        row = await system.insert("trip_participants", {"trip_id": trip_id, "user_id": user_id, "is_owner": False})
        await self._invalidate_trip_caches(trip_id, user_id)
        logger.info(f"User {user_id} joined trip {trip_id} with invite code {invite_code}")
        return ParticipantOut.model_validate(row)

    async def remove_participant(self, persistence: PersistenceService, trip_id: str, participant_id: str) -> None:
        rows = await persistence.select("trip_participants", {"id": participant_id, "trip_id": trip_id})
        if not rows:
            raise RecordNotFoundError("Participant not found")
        await persistence.delete("trip_participants", {"id": participant_id})
        await self._invalidate_trip_caches(trip_id, rows[0]["user_id"])
        logger.info(f"Participant {participant_id} removed from trip {trip_id}")
