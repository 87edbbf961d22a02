"""Change notification contract shared by publishers and subscribers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Protocol

from pydantic import BaseModel, Field

ChangeKind = Literal["insert", "update", "delete"]
SubscribedKind = Literal["insert", "update", "delete", "*"]


class ChangeEvent(BaseModel):
    event: ChangeKind
    table: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    committed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``; pass it back to ``unsubscribe``."""

    table: str
    filter: Dict[str, Any]
    callback: ChangeCallback
    event: SubscribedKind = "*"
    active: bool = field(default=True)

    def matches(self, change: ChangeEvent) -> bool:
        if not self.active or change.table != self.table:
            return False
        if self.event != "*" and change.event != self.event:
            return False
        return all(change.payload.get(key) == value for key, value in self.filter.items())


class ChangeFeed(Protocol):
    async def publish(self, event: ChangeEvent) -> None: ...

    async def subscribe(
        self,
        table: str,
        filter: Optional[Dict[str, Any]],
        callback: ChangeCallback,
        event: SubscribedKind = "*",
    ) -> Subscription: ...

    async def unsubscribe(self, handle: Subscription) -> None: ...

    async def close(self) -> None: ...
