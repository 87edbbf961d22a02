"""Session-scoped store behind one person's view of a trip's activities.

A ``VotingCoordinator`` caches the trip's activities and votes, derives
tallies from them, and runs the vote / finalize actions. It is built when a
trip view opens and closed when it goes away; closing releases its change
feed subscriptions, which would otherwise keep triggering refetches for a
view nobody is looking at.

Consistency model: the database is the only source of truth. Every change
notification triggers a full refetch of the affected list, which makes
reconciling idempotent and independent of delivery order. Votes are never
applied optimistically; finalize is, because only an owner can issue it.

Authorization is not re-checked here. Owner-only and creator-only actions
rely on the row policies enforced by the persistence layer.
"""

from typing import Awaitable, Callable, List, Optional

from planit.core.config import settings
from planit.core.exceptions import ActionBlockedError, PersistenceError
from planit.core.logger import logger
from planit.models.activities.activity import ActivityStatus
from planit.schemas.activities.activity import ActivityCreate, ActivityOut, ActivityUpdate
from planit.schemas.activities.board import ActivityBoard, ActivityCard, ActivityGroup, BoardQuery, Notice
from planit.schemas.activities.vote import UserVote, VoteOut, VoteTally
from planit.schemas.trip.trip_participant import ParticipantOut
from planit.schemas.trip.trip_schema import TripContext
from planit.services.activities import activity_service
from planit.services.activities.activity_filters import apply_filters, group_by_date
from planit.services.activities.tally import build_tally, cost_per_person, count_votes, vote_percentage
from planit.services.persistence.base import PersistenceService
from planit.services.realtime.change_feed import ChangeEvent, ChangeFeed, Subscription
from planit.utils.money import format_money

ChangeHook = Callable[[], Awaitable[None]]


class VotingCoordinator:
    def __init__(
        self,
        persistence: PersistenceService,
        feed: Optional[ChangeFeed],
        trip_id: str,
        user_id: str,
        on_change: Optional[ChangeHook] = None,
    ):
        self.persistence = persistence
        self.feed = feed
        self.trip_id = trip_id
        self.user_id = user_id
        self.on_change = on_change

        self.trip: Optional[TripContext] = None
        self.participants: List[ParticipantOut] = []
        self.activities: List[ActivityOut] = []
        self.votes: List[VoteOut] = []
        self._subscriptions: List[Subscription] = []

    async def __aenter__(self) -> "VotingCoordinator":
        await self.load()
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Lifecycle

    async def load(self) -> None:
        """Fetch the full trip view. Raises ``PersistenceError`` if the trip cannot be read."""
        self.trip = await activity_service.fetch_trip_context(self.persistence, self.trip_id)
        self.participants = await activity_service.fetch_participants(self.persistence, self.trip_id)
        self.activities = await activity_service.fetch_activities(self.persistence, self.trip_id)
        self.votes = await activity_service.fetch_votes(self.persistence, self.activity_ids)
        logger.info(
            f"Loaded trip {self.trip_id} for user {self.user_id}: "
            f"{len(self.activities)} activities, {len(self.votes)} votes"
        )

    async def start(self) -> None:
        if self.feed is None or self._subscriptions:
            return
        scope = {"trip_id": self.trip_id}
        self._subscriptions.append(await self.feed.subscribe("activities", scope, self.reconcile))
        self._subscriptions.append(await self.feed.subscribe("activity_votes", scope, self.reconcile))

    async def close(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for handle in subscriptions:
            await self.feed.unsubscribe(handle)
        if subscriptions:
            logger.info(f"Closed activities view of trip {self.trip_id} for user {self.user_id}")

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    # Derived state

    @property
    def activity_ids(self) -> List[str]:
        return [activity.id for activity in self.activities]

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_owner(self) -> bool:
        return any(p.user_id == self.user_id and p.is_owner for p in self.participants)

    def get_activity(self, activity_id: str) -> Optional[ActivityOut]:
        return next((a for a in self.activities if a.id == activity_id), None)

    def get_activity_votes(self, activity_id: str) -> List[VoteOut]:
        return [vote for vote in self.votes if vote.activity_id == activity_id]

    def get_user_vote(self, activity_id: str) -> UserVote:
        mine = self._own_vote(activity_id)
        if mine is None:
            return UserVote(has_voted=False, vote=None)
        return UserVote(has_voted=True, vote=mine.vote)

    def tally(self, activity_id: str) -> VoteTally:
        return build_tally(self.get_activity_votes(activity_id), self.participant_count)

    def vote_percentage(self, activity_id: str) -> int:
        yes, _ = count_votes(self.get_activity_votes(activity_id))
        return vote_percentage(yes, self.participant_count)

    def cost_per_person(self, activity: ActivityOut):
        return cost_per_person(activity.cost, self.participant_count)

    def can_edit(self, activity: ActivityOut) -> bool:
        return activity.created_by == self.user_id or self.is_owner

    def can_finalize(self, activity: ActivityOut) -> bool:
        return (
            self.is_owner
            and activity.status == ActivityStatus.voting
            and bool(self.get_activity_votes(activity.id))
        )

    def _own_vote(self, activity_id: str) -> Optional[VoteOut]:
        return next(
            (v for v in self.votes if v.activity_id == activity_id and v.user_id == self.user_id),
            None,
        )

    # Actions

    async def cast_vote(self, activity_id: str, value: bool) -> Notice:
        try:
            activity_service.ensure_open_for_voting(self.get_activity(activity_id))
        except (ActionBlockedError, PersistenceError) as exc:
            logger.info(f"Vote by {self.user_id} on {activity_id} refused: {exc}")
            return Notice(ok=False, title="Voting closed", description="This activity is not open for voting.")

        try:
            await activity_service.upsert_vote(
                self.persistence, activity_id, self.user_id, value, existing=self._own_vote(activity_id)
            )
        except PersistenceError as exc:
            logger.error(f"Error recording vote by {self.user_id} on {activity_id}: {exc}")
            return Notice(ok=False, title="Error", description="Failed to record your vote. Please try again.")

        await self._refresh_votes()
        await self._changed()
        return Notice(
            ok=True,
            title="Vote Recorded",
            description=f"You voted {'for' if value else 'against'} this activity.",
        )

    async def finalize(self, activity_id: str) -> Notice:
        activity = self.get_activity(activity_id)
        if activity is None:
            return Notice(ok=False, title="Error", description="Activity not found.")
        try:
            finalized = await activity_service.finalize_activity(self.persistence, activity, self.votes)
        except ActionBlockedError as exc:
            logger.info(f"Finalize of {activity_id} blocked: {exc}")
            return Notice(
                ok=False,
                title="Nothing to finalize",
                description="Only activities in voting with at least one vote can be finalized.",
            )
        except PersistenceError as exc:
            logger.error(f"Error finalizing activity {activity_id}: {exc}")
            return Notice(ok=False, title="Error", description="Failed to finalize voting. Please try again.")

        outcome = finalized.status
        self.activities = [
            a.model_copy(update={"status": outcome}) if a.id == activity_id else a
            for a in self.activities
        ]
        await self._changed()
        if outcome == ActivityStatus.confirmed:
            return Notice(ok=True, title="Activity confirmed!", description="The activity has been added to the itinerary.")
        return Notice(ok=True, title="Activity needs revision", description="The activity didn't receive enough votes.")

    async def save_activity(self, data, activity_id: Optional[str] = None) -> Notice:
        """Create an activity from ``ActivityCreate`` or edit one with ``ActivityUpdate``."""
        try:
            if activity_id is None:
                if not isinstance(data, ActivityCreate):
                    data = ActivityCreate.model_validate(data)
                await activity_service.create_activity(self.persistence, self.trip_id, data, self.user_id)
            else:
                if not isinstance(data, ActivityUpdate):
                    data = ActivityUpdate.model_validate(data)
                await activity_service.update_activity(self.persistence, activity_id, data)
        except PersistenceError as exc:
            logger.error(f"Error saving activity in trip {self.trip_id}: {exc}")
            return Notice(ok=False, title="Error", description="Failed to save activity. Please try again.")

        await self._refresh_activities()
        await self._changed()
        if activity_id is None:
            return Notice(ok=True, title="Activity Created", description="The new activity has been added successfully.")
        return Notice(ok=True, title="Activity Updated", description="The activity has been updated successfully.")

    async def delete_activity(self, activity_id: str) -> Notice:
        try:
            await activity_service.delete_activity(self.persistence, activity_id)
        except PersistenceError as exc:
            logger.error(f"Error deleting activity {activity_id}: {exc}")
            return Notice(ok=False, title="Error", description="Failed to delete activity. Please try again.")

        self.activities = [a for a in self.activities if a.id != activity_id]
        self.votes = [v for v in self.votes if v.activity_id != activity_id]
        await self._changed()
        return Notice(ok=True, title="Activity Deleted", description="The activity has been deleted successfully.")

    # Reconciliation

    async def reconcile(self, event: ChangeEvent) -> bool:
        """Refetch whatever ``event`` touched. Returns False when the refetch failed."""
        if event.table == "activities":
            refreshed = await self._refresh_activities()
        elif event.table == "activity_votes":
            refreshed = await self._refresh_votes()
        else:
            return False
        if refreshed:
            await self._changed()
        return refreshed

    async def _refresh_activities(self) -> bool:
        try:
            self.activities = await activity_service.fetch_activities(self.persistence, self.trip_id)
        except PersistenceError as exc:
            logger.warning(f"Activities refetch for trip {self.trip_id} failed, keeping cached list: {exc}")
            return False
        return True

    async def _refresh_votes(self) -> bool:
        try:
            self.votes = await activity_service.fetch_votes(self.persistence, self.activity_ids)
        except PersistenceError as exc:
            logger.warning(f"Votes refetch for trip {self.trip_id} failed, keeping cached list: {exc}")
            return False
        return True

    async def _changed(self) -> None:
        if self.on_change is None:
            return
        try:
            await self.on_change()
        except Exception:
            logger.exception(f"Change hook failed for trip {self.trip_id}")

    # Presentation

    def card(self, activity: ActivityOut) -> ActivityCard:
        currency = self.trip.currency if self.trip else settings.DEFAULT_CURRENCY
        per_person = self.cost_per_person(activity)
        return ActivityCard(
            activity=activity,
            votes=self.get_activity_votes(activity.id),
            tally=self.tally(activity.id),
            user_vote=self.get_user_vote(activity.id),
            cost_display=format_money(activity.cost, currency),
            cost_per_person=per_person,
            cost_per_person_display=format_money(per_person, currency),
            can_edit=self.can_edit(activity),
            can_finalize=self.can_finalize(activity),
        )

    def board(self, query: Optional[BoardQuery] = None) -> ActivityBoard:
        query = query or BoardQuery()
        visible = apply_filters(self.activities, query)
        board = ActivityBoard(
            trip_id=self.trip_id,
            currency=self.trip.currency if self.trip else settings.DEFAULT_CURRENCY,
            participant_count=self.participant_count,
            is_owner=self.is_owner,
            total=len(visible),
            cards=[self.card(activity) for activity in visible],
        )
        if query.group_by_date:
            board.groups = [
                ActivityGroup(key=key, cards=[self.card(activity) for activity in group])
                for key, group in group_by_date(visible)
            ]
        return board
