import asyncio
from typing import Any, Union
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from planit.core.database import get_db
from planit.core.exceptions import PersistenceError
from planit.core.logger import logger
from planit.core.redis_lifecycle import get_change_feed
from planit.dependencies.auth import user_from_token
from planit.dependencies.services import get_session_factory
from planit.schemas.activities.board import BoardQuery, Notice
from planit.schemas.activities.live import LiveMessage
from planit.services.activities.voting_coordinator import VotingCoordinator
from planit.services.persistence.sql_persistence import SqlPersistence

router = APIRouter(prefix="/trips", tags=["Trip Activities"])


def _first_error(exc: ValidationError) -> str:
    return str(exc.errors()[0]["msg"])


class LiveBoard:
    """Pushes board snapshots and notices down one socket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.coordinator: VotingCoordinator = None
        self.query = BoardQuery()
        self._send_lock = asyncio.Lock()

    async def send(self, kind: str, data) -> None:
        async with self._send_lock:
            await self.websocket.send_json({"type": kind, "data": data})

    async def push_board(self) -> None:
        board = self.coordinator.board(self.query)
        await self.send("board", board.model_dump(mode="json"))

    async def push_notice(self, notice: Notice) -> None:
        await self.send("notice", notice.model_dump(mode="json"))

    async def handle(self, raw: Union[str, bytes, Any]) -> None:
        """Run one client frame. Raw text is parsed here so bad JSON gets a notice too."""
        try:
            if isinstance(raw, (str, bytes)):
                message = LiveMessage.model_validate_json(raw)
            else:
                message = LiveMessage.model_validate(raw)
        except ValidationError as exc:
            logger.info(f"Rejected live board message: {_first_error(exc)}")
            await self.push_notice(Notice(ok=False, title="Invalid message", description=_first_error(exc)))
            return

        if message.action == "vote":
            notice = await self.coordinator.cast_vote(message.activity_id, message.value)
        elif message.action == "finalize":
            notice = await self.coordinator.finalize(message.activity_id)
        elif message.action == "save":
            try:
                notice = await self.coordinator.save_activity(message.data or {}, message.activity_id)
            except ValidationError as exc:
                notice = Notice(ok=False, title="Invalid activity", description=_first_error(exc))
        elif message.action == "delete":
            notice = await self.coordinator.delete_activity(message.activity_id)
        else:
            try:
                self.query = BoardQuery.model_validate(message.query or {})
            except ValidationError:
                await self.push_notice(Notice(ok=False, title="Error", description="Unsupported board query."))
                return
            await self.push_board()
            return
        await self.push_notice(notice)


@router.websocket("/{trip_id}/activities/live")
async def live_activity_board(
    websocket: WebSocket,
    trip_id: str,
    token: str = Query(...),
    db: AsyncSession = Depends(get_db),
    session_factory=Depends(get_session_factory),
    feed=Depends(get_change_feed),
):
    user = await user_from_token(token, db)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    live = LiveBoard(websocket)
    persistence = SqlPersistence(session_factory, user.id, feed)
    live.coordinator = VotingCoordinator(persistence, feed, trip_id, user.id, on_change=live.push_board)

    try:
        async with live.coordinator:
            await live.push_board()
            while True:
                await live.handle(await websocket.receive_text())
    except PersistenceError as exc:
        logger.warning(f"Live board for trip {trip_id} unavailable to user {user.id}: {exc}")
        await live.push_notice(Notice(ok=False, title="Error", description="Failed to load activities. Please try again."))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    except WebSocketDisconnect:
        logger.info(f"User {user.id} left the live board of trip {trip_id}")
