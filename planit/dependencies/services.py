from fastapi import Depends
from planit.core.database import SessionLocal
from planit.core.redis_lifecycle import get_cache, get_change_feed
from planit.dependencies.auth import get_current_user
from planit.models.user.user import User
from planit.services.persistence.sql_persistence import SqlPersistence
from planit.services.trips.trip_service import TripService


def get_session_factory():
    return SessionLocal


async def get_persistence(
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
    feed=Depends(get_change_feed),
) -> SqlPersistence:
    return SqlPersistence(session_factory, current_user.id, feed)


async def get_trip_service(cache=Depends(get_cache)) -> TripService:
    return TripService(cache)


async def get_system_persistence(
    session_factory=Depends(get_session_factory),
    feed=Depends(get_change_feed),
) -> SqlPersistence:
    """Trusted context for flows that run before the caller has any row access, such as joining."""
    return SqlPersistence(session_factory, None, feed)
