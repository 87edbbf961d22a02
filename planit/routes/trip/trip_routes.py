from fastapi import APIRouter, Depends, status
from typing import List
from planit.dependencies.auth import get_current_user
from planit.dependencies.services import get_persistence, get_trip_service
from planit.models.user.user import User
from planit.schemas.trip.trip_schema import TripCreate, TripResponse
from planit.services.persistence.sql_persistence import SqlPersistence
from planit.services.trips.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip_route(
    trip: TripCreate,
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.create_trip(persistence, trip, current_user.id)


@router.get("", response_model=List[TripResponse])
async def get_my_trips(
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.get_user_trips(persistence, current_user.id)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: str,
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.get_trip(persistence, trip_id, current_user.id)
