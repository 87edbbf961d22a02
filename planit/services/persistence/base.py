from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

Record = Dict[str, Any]
# Column -> value. A list/tuple/set value means "column IN values".
Filter = Dict[str, Any]

TABLES = ("users", "trips", "trip_participants", "activities", "activity_votes")


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False
    nulls_last: bool = True


class PersistenceService(Protocol):
    """Table-generic gateway to the system of record.

    Every method raises a ``PersistenceError`` subclass on failure.
    """

    async def insert(self, table: str, record: Record) -> Record: ...

    async def update(self, table: str, filter: Filter, patch: Record) -> Record: ...

    async def delete(self, table: str, filter: Filter) -> None: ...

    async def select(
        self, table: str, filter: Filter, order: Optional[Sequence[Order]] = None
    ) -> List[Record]: ...
