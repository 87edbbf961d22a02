from fastapi import APIRouter, Depends, status
from planit.dependencies.auth import get_current_user
from planit.dependencies.services import get_persistence, get_system_persistence, get_trip_service
from planit.models.user.user import User
from planit.schemas.trip.trip_participant import ParticipantCreate, ParticipantListResponse, ParticipantOut
from planit.services.persistence.sql_persistence import SqlPersistence
from planit.services.trips.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["Trip Participants"])


@router.get("/{trip_id}/participants", response_model=ParticipantListResponse)
async def list_participants(
    trip_id: str,
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    participants = await trip_service.list_participants(persistence, trip_id, current_user.id)
    return ParticipantListResponse(participants=participants)


@router.post("/{trip_id}/participants", response_model=ParticipantOut, status_code=status.HTTP_201_CREATED)
async def add_participant(
    trip_id: str,
    data: ParticipantCreate,
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    """Owners add people to their trip."""
    return await trip_service.add_participant(persistence, trip_id, data)


@router.delete("/{trip_id}/participants/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_participant(
    trip_id: str,
    participant_id: str,
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    await trip_service.remove_participant(persistence, trip_id, participant_id)


@router.post("/join/{invite_code}", response_model=ParticipantOut)
async def join_trip(
    invite_code: str,
    current_user: User = Depends(get_current_user),
    system: SqlPersistence = Depends(get_system_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    """Accept a shared invite link; joining a trip twice is a no-op."""
    return await trip_service.join_trip(system, invite_code, current_user.id)
