from fastapi import APIRouter, Depends, Query, status
from typing import List
from planit.dependencies.auth import get_current_user
from planit.dependencies.services import get_persistence
from planit.models.user.user import User
from planit.schemas.activities.activity import ActivityCreate, ActivityOut, ActivityUpdate
from planit.schemas.activities.board import ActivityBoard, BoardQuery, SortOrder
from planit.schemas.activities.vote import VoteOut, VoteRequest
from planit.services.activities import activity_service
from planit.services.activities.voting_coordinator import VotingCoordinator
from planit.services.persistence.sql_persistence import SqlPersistence

router = APIRouter(prefix="/trips", tags=["Trip Activities"])


def board_query(
    search: str = Query("", description="Substring of title, description or location"),
    status: str = Query("all", pattern="^(all|confirmed|pending|voting)$"),
    category: str = Query("all", pattern="^(all|adventure|food|sightseeing|other)$"),
    sort: SortOrder = Query(SortOrder.date_asc),
    group_by_date: bool = Query(False),
) -> BoardQuery:
    return BoardQuery(search=search, status=status, category=category, sort=sort, group_by_date=group_by_date)


@router.get("/{trip_id}/activities", response_model=ActivityBoard)
async def get_activity_board(
    trip_id: str,
    query: BoardQuery = Depends(board_query),
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
):
    """One-shot snapshot of the board; the live socket keeps it fresh instead."""
    coordinator = VotingCoordinator(persistence, None, trip_id, current_user.id)
    await coordinator.load()
    return coordinator.board(query)


@router.post("/{trip_id}/activities", response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
async def create_activity(
    trip_id: str,
    data: ActivityCreate,
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
):
    return await activity_service.create_activity(persistence, trip_id, data, current_user.id)


@router.patch("/{trip_id}/activities/{activity_id}", response_model=ActivityOut)
async def update_activity(
    trip_id: str,
    activity_id: str,
    data: ActivityUpdate,
    persistence: SqlPersistence = Depends(get_persistence),
):
    await activity_service.fetch_activity(persistence, trip_id, activity_id)
    return await activity_service.update_activity(persistence, activity_id, data)


@router.delete("/{trip_id}/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    trip_id: str,
    activity_id: str,
    persistence: SqlPersistence = Depends(get_persistence),
):
    await activity_service.fetch_activity(persistence, trip_id, activity_id)
    await activity_service.delete_activity(persistence, activity_id)


@router.get("/{trip_id}/activities/{activity_id}/votes", response_model=List[VoteOut])
async def list_votes(
    trip_id: str,
    activity_id: str,
    persistence: SqlPersistence = Depends(get_persistence),
):
    await activity_service.fetch_activity(persistence, trip_id, activity_id)
    return await activity_service.fetch_votes(persistence, [activity_id])


@router.post("/{trip_id}/activities/{activity_id}/vote", response_model=VoteOut)
async def vote_on_activity(
    trip_id: str,
    activity_id: str,
    payload: VoteRequest,
    current_user: User = Depends(get_current_user),
    persistence: SqlPersistence = Depends(get_persistence),
):
    activity = await activity_service.fetch_activity(persistence, trip_id, activity_id)
    activity_service.ensure_open_for_voting(activity)
    return await activity_service.upsert_vote(persistence, activity_id, current_user.id, payload.value)


@router.post("/{trip_id}/activities/{activity_id}/finalize", response_model=ActivityOut)
async def finalize_activity(
    trip_id: str,
    activity_id: str,
    persistence: SqlPersistence = Depends(get_persistence),
):
    activity = await activity_service.fetch_activity(persistence, trip_id, activity_id)
    votes = await activity_service.fetch_votes(persistence, [activity_id])
    return await activity_service.finalize_activity(persistence, activity, votes)
