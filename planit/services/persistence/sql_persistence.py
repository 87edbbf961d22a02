from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from planit.core.exceptions import (
    ConflictError, InvalidRecordError, PersistenceError, RecordNotFoundError
)
from planit.core.logger import logger
from planit.models.activities.activity import Activity, ActivityCategory, ActivityStatus
from planit.models.activities.activity_vote import ActivityVote
from planit.models.trips.trip_model import Trip
from planit.models.trips.trip_participant import TripParticipant
from planit.models.user.user import User
from planit.services.persistence.base import Filter, Order, Record
from planit.services.persistence.policies import RowPolicy, trip_id_of
from planit.services.realtime.change_feed import ChangeEvent, ChangeFeed

MODELS = {
    "users": User,
    "trips": Trip,
    "trip_participants": TripParticipant,
    "activities": Activity,
    "activity_votes": ActivityVote,
}

ENUM_COLUMNS = {
    ("activities", "category"): ActivityCategory,
    ("activities", "status"): ActivityStatus,
}


class SqlPersistence:
    """SQLAlchemy-backed ``PersistenceService``.

    Each call runs in its own short session so a long-lived caller (a live
    board) never reads through a stale identity map. Writes are checked
    against ``RowPolicy`` for ``actor_id``; ``actor_id=None`` is the trusted
    service context and skips row policies. Committed writes are published to
    ``feed`` when one is given.
    """

    def __init__(self, session_factory, actor_id: Optional[str], feed: Optional[ChangeFeed] = None):
        self.session_factory = session_factory
        self.actor_id = actor_id
        self.feed = feed
        self.policy = RowPolicy(actor_id) if actor_id is not None else None

    @staticmethod
    def _model(table: str):
        model = MODELS.get(table)
        if model is None:
            raise InvalidRecordError(f"unknown table {table!r}")
        return model

    @staticmethod
    def _coerce(table: str, values: Record) -> Record:
        model = MODELS[table]
        coerced = {}
        for column, value in values.items():
            if not hasattr(model, column):
                raise InvalidRecordError(f"{table} has no column {column!r}")
            enum_type = ENUM_COLUMNS.get((table, column))
            if enum_type is not None and value is not None:
                try:
                    if isinstance(value, (list, tuple, set, frozenset)):
                        value = [enum_type(item) for item in value]
                    else:
                        value = enum_type(value)
                except ValueError:
                    raise InvalidRecordError(f"{value!r} is not a valid {table}.{column}") from None
            coerced[column] = value
        return coerced

    def _where(self, table: str, filter: Filter):
        model = self._model(table)
        clauses = []
        for column, value in self._coerce(table, filter or {}).items():
            attr = getattr(model, column)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(attr.in_(list(value)))
            else:
                clauses.append(attr == value)
        return clauses

    async def _rows(self, session: AsyncSession, table: str, filter: Filter, order: Optional[Sequence[Order]] = None):
        model = self._model(table)
        query = select(model).where(*self._where(table, filter))
        for item in order or ():
            if not hasattr(model, item.column):
                raise InvalidRecordError(f"{table} has no column {item.column!r}")
            column = getattr(model, item.column)
            clause = column.desc() if item.descending else column.asc()
            clause = clause.nulls_last() if item.nulls_last else clause.nulls_first()
            query = query.order_by(clause)
        result = await session.execute(query)
        return result.scalars().all()

    async def select(self, table: str, filter: Filter, order: Optional[Sequence[Order]] = None) -> List[Record]:
        async with self.session_factory() as session:
            try:
                rows = [obj.to_dict() for obj in await self._rows(session, table, filter, order)]
                if self.policy:
                    rows = await self.policy.filter_visible(session, table, rows)
            except SQLAlchemyError as exc:
                logger.error(f"Select on {table} failed: {exc}")
                raise PersistenceError(f"select on {table} failed") from exc
        return rows

    async def insert(self, table: str, record: Record) -> Record:
        model = self._model(table)
        values = self._coerce(table, record)
        async with self.session_factory() as session:
            try:
                if self.policy:
                    await self.policy.check_insert(session, table, values)
                obj = model(**values)
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
                created = obj.to_dict()
                trip_id = await trip_id_of(session, table, created)
            except IntegrityError as exc:
                await session.rollback()
                logger.warning(f"Insert into {table} rejected by constraint: {exc.orig}")
                raise ConflictError(f"insert into {table} violates a constraint") from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"Insert into {table} failed: {exc}")
                raise PersistenceError(f"insert into {table} failed") from exc

        logger.info(f"Inserted {table} row {created.get('id')} by user {self.actor_id}")
        await self._publish("insert", table, created, trip_id)
        return created

    async def update(self, table: str, filter: Filter, patch: Record) -> Record:
        values = self._coerce(table, patch)
        async with self.session_factory() as session:
            try:
                objs = await self._rows(session, table, filter)
                if not objs:
                    raise RecordNotFoundError(f"no {table} row matches {filter}")
                if self.policy:
                    for obj in objs:
                        await self.policy.check_update(session, table, obj.to_dict(), values)
                for obj in objs:
                    for key, value in values.items():
                        setattr(obj, key, value)
                await session.commit()
                updated = []
                for obj in objs:
                    await session.refresh(obj)
                    row = obj.to_dict()
                    updated.append((row, await trip_id_of(session, table, row)))
            except IntegrityError as exc:
                await session.rollback()
                logger.warning(f"Update of {table} rejected by constraint: {exc.orig}")
                raise ConflictError(f"update of {table} violates a constraint") from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"Update of {table} failed: {exc}")
                raise PersistenceError(f"update of {table} failed") from exc

        for row, trip_id in updated:
            logger.info(f"Updated {table} row {row.get('id')} by user {self.actor_id}: {sorted(values)}")
            await self._publish("update", table, row, trip_id)
        return updated[0][0]

    async def delete(self, table: str, filter: Filter) -> None:
        async with self.session_factory() as session:
            try:
                objs = await self._rows(session, table, filter)
                if not objs:
                    raise RecordNotFoundError(f"no {table} row matches {filter}")
                removed = []
                for obj in objs:
                    row = obj.to_dict()
                    if self.policy:
                        await self.policy.check_delete(session, table, row)
                    removed.append((row, await trip_id_of(session, table, row)))
                for obj in objs:
                    await session.delete(obj)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(f"delete from {table} violates a constraint") from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"Delete from {table} failed: {exc}")
                raise PersistenceError(f"delete from {table} failed") from exc

        for row, trip_id in removed:
            logger.info(f"Deleted {table} row {row.get('id')} by user {self.actor_id}")
            await self._publish("delete", table, row, trip_id)

    async def _publish(self, kind: str, table: str, row: Dict[str, Any], trip_id: Optional[str]) -> None:
        if self.feed is None:
            return
        payload = dict(row)
        if trip_id is not None:
            payload["trip_id"] = trip_id
        try:
            await self.feed.publish(ChangeEvent(event=kind, table=table, payload=payload))
        except Exception as exc:
            # The write is already durable; subscribers catch up on their next event
            logger.warning(f"Could not publish {kind} on {table}: {exc}")
