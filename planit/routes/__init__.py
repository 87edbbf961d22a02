# planit/routes/__init__.py
from fastapi import APIRouter
from planit.routes.trip import trip_routes, trip_participant
from planit.routes.activities import activity_routes, live


api_router = APIRouter()

# Trip routes
api_router.include_router(trip_routes.router)
api_router.include_router(trip_participant.router)

# Activity routes
api_router.include_router(activity_routes.router)
api_router.include_router(live.router)
