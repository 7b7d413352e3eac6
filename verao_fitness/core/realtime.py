"""
Realtime subscription manager.

One Supabase channel per table, shared by every listener interested in that
table. The first ``acquire`` for a table opens the channel, the last
``release`` removes it, and each change event is fanned out to all current
listeners. Listeners are not filtered by payload: any insert, update or
delete is delivered.
"""

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from verao_fitness.services.logger import logger

ChangeListener = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class Subscription:
    table: str
    id: str


@dataclass
class _TableChannel:
    handle: Any
    listeners: Dict[str, ChangeListener] = field(default_factory=dict)


def _event_type(payload: Any) -> str:
    if not isinstance(payload, dict):
        return "*"
    data = payload.get("data")
    if isinstance(data, dict):
        payload = data
    return str(payload.get("type") or payload.get("eventType") or "*").upper()


class RealtimeSubscriptionManager:
    def __init__(self, gateway: Any, event_mask: str = "*"):
        self._gateway = gateway
        self._event_mask = event_mask
        self._channels: Dict[str, _TableChannel] = {}
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Future] = set()
        # Set once the gateway holds a live realtime connection
        self.available = False

    async def acquire(self, table: str, listener: ChangeListener) -> Subscription:
        async with self._lock:
            channel = self._channels.get(table)
            if channel is None:
                handle = await self._gateway.subscribe(
                    table, self._event_mask, self._make_callback(table)
                )
                channel = _TableChannel(handle=handle)
                self._channels[table] = channel
                logger.info(f"Opened realtime channel for '{table}'")

            subscription = Subscription(table=table, id=str(uuid.uuid4()))
            channel.listeners[subscription.id] = listener
            return subscription

    async def release(self, subscription: Subscription) -> None:
        async with self._lock:
            channel = self._channels.get(subscription.table)
            if channel is None:
                return
            if channel.listeners.pop(subscription.id, None) is None:
                return
            if channel.listeners:
                return

            del self._channels[subscription.table]
            await self._gateway.unsubscribe(channel.handle)
            logger.info(f"Closed realtime channel for '{subscription.table}'")

    async def close(self) -> None:
        async with self._lock:
            self.available = False
            channels, self._channels = self._channels, {}
            for table, channel in channels.items():
                await self._gateway.unsubscribe(channel.handle)
                logger.info(f"Closed realtime channel for '{table}'")

    def listener_count(self, table: str) -> int:
        channel = self._channels.get(table)
        return len(channel.listeners) if channel else 0

    def open_tables(self) -> List[str]:
        return sorted(self._channels)

    def _make_callback(self, table: str) -> Callable[[Any], None]:
        def callback(payload: Any) -> None:
            self.dispatch(table, payload)

        return callback

    def dispatch(self, table: str, payload: Any) -> None:
        channel = self._channels.get(table)
        if channel is None:
            return

        change = {"table": table, "event": _event_type(payload)}
        for listener in list(channel.listeners.values()):
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._listener_done)
            except Exception:
                logger.exception(f"Realtime listener for '{table}' failed")

    def _listener_done(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async realtime listener failed", exc_info=exc)

    def pending_listeners(self) -> int:
        return len(self._pending)
