"""Redis pub/sub implementation of the change notification service."""

import asyncio
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from planit.core.config import settings
from planit.core.logger import logger
from planit.services.realtime.change_feed import (
    ChangeCallback, ChangeEvent, Subscription, SubscribedKind
)


class RedisChangeFeed:
    """Fans committed row changes out to in-process subscribers.

    Publishers write JSON events to ``{prefix}:{table}``. One pub/sub
    connection per process listens on every channel that has at least one
    local subscriber; filters are matched against the event payload here, so
    a subscriber only sees rows of its own trip. Delivery is at-least-once
    and carries no ordering across tables.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        prefix: str = settings.CHANGE_FEED_PREFIX,
        poll_interval: float = settings.CHANGE_FEED_POLL_INTERVAL,
        autostart: bool = True,
    ):
        self.redis = redis_client
        self.prefix = prefix
        self.poll_interval = poll_interval
        self.autostart = autostart
        self._pubsub = redis_client.pubsub()
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = asyncio.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    def channel(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    @property
    def subscription_count(self) -> int:
        return sum(len(handles) for handles in self._subscriptions.values())

    async def publish(self, event: ChangeEvent) -> None:
        await self.redis.publish(self.channel(event.table), event.model_dump_json())

    async def subscribe(
        self,
        table: str,
        filter: Optional[Dict[str, Any]],
        callback: ChangeCallback,
        event: SubscribedKind = "*",
    ) -> Subscription:
        handle = Subscription(table=table, filter=dict(filter or {}), callback=callback, event=event)
        channel = self.channel(table)
        async with self._lock:
            if channel not in self._subscriptions:
                await self._pubsub.subscribe(channel)
                self._subscriptions[channel] = []
            self._subscriptions[channel].append(handle)
        logger.info(f"Subscribed to {channel} with filter {handle.filter}")
        if self.autostart:
            self.start()
        return handle

    async def unsubscribe(self, handle: Subscription) -> None:
        handle.active = False
        channel = self.channel(handle.table)
        async with self._lock:
            handles = self._subscriptions.get(channel)
            if handles is None:
                return
            if handle in handles:
                handles.remove(handle)
            if not handles:
                del self._subscriptions[channel]
                await self._pubsub.unsubscribe(channel)
        logger.info(f"Unsubscribed from {channel} with filter {handle.filter}")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._running = True
            self._task = asyncio.create_task(self.run_forever())

    def stop(self) -> None:
        self._running = False

    async def run_forever(self) -> None:
        self._running = True
        while self._running:
            if not self._subscriptions:
                await asyncio.sleep(self.poll_interval)
                continue
            try:
                await self.process_once(timeout=self.poll_interval)
            except redis.ConnectionError as exc:
                logger.error(f"Change feed lost its Redis connection: {exc}")
                await asyncio.sleep(self.poll_interval)
            except Exception:
                logger.exception("Change feed listener failed, continuing")
                await asyncio.sleep(self.poll_interval)

    async def process_once(self, timeout: float = 0.0) -> int:
        """Read at most one message and dispatch it. Returns deliveries made."""
        if not self._pubsub.subscribed:
            return 0
        message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if not message or message.get("type") != "message":
            return 0
        data = message["data"]
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            change = ChangeEvent.model_validate_json(data)
        except ValidationError as exc:
            logger.warning(f"Dropping malformed change event on {message.get('channel')}: {exc}")
            return 0
        return await self.dispatch(change)

    async def dispatch(self, change: ChangeEvent) -> int:
        delivered = 0
        for handle in list(self._subscriptions.get(self.channel(change.table), [])):
            if not handle.matches(change):
                continue
            try:
                await handle.callback(change)
                delivered += 1
            except Exception:
                logger.exception(f"Change feed subscriber failed on {change.event} {change.table}")
        return delivered

    async def close(self) -> None:
        self.stop()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._subscriptions.clear()
        await self._pubsub.aclose()
