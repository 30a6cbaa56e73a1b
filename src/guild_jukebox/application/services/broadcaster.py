"""Event Broadcaster - relays queue snapshots and periodic aggregate stats."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from guild_jukebox.domain.music.entities import QueueSnapshot
from guild_jukebox.domain.shared.events import (
    DomainEvent,
    EventBus,
    EventHandler,
    QueueUpdated,
    SessionClosed,
    SessionOpened,
    StatsUpdated,
)
from guild_jukebox.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

DEFAULT_STATS_INTERVAL: float = 5.0
DEFAULT_FLUSH_TIMEOUT: float = 2.0


class StatsSource(Protocol):
    def get_session_count(self) -> int: ...

    def get_total_pending_tracks(self) -> int: ...


class EventBroadcaster:
    """Stateless relay from the playback core to external listeners.

    Publishing only appends to an outbox; a separate delivery task hands the
    events to the bus in publish order. Publishers never wait on listeners, so
    a listener may call back into a controller or the registry from its handler.

    There is no replay buffer: a listener that subscribes after a mutation
    has to pull the current state through the registry's query operations.
    """

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        stats_interval: float = DEFAULT_STATS_INTERVAL,
    ) -> None:
        self._bus = bus or EventBus()
        self._stats_interval = stats_interval
        self._started_at = time.monotonic()
        self._stats_source: StatsSource | None = None
        self._guild_count: Callable[[], int] | None = None
        self._task: asyncio.Task[None] | None = None
        self._outbox: asyncio.Queue[DomainEvent] = asyncio.Queue()
        self._delivery: asyncio.Task[None] | None = None

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_at

    def subscribe_queue_updates(self, handler: EventHandler[QueueUpdated]) -> None:
        self._bus.subscribe(QueueUpdated, handler)

    def subscribe_stats(self, handler: EventHandler[StatsUpdated]) -> None:
        self._bus.subscribe(StatsUpdated, handler)

    async def publish(self, event: DomainEvent) -> None:
        """Queue *event* for delivery and return without waiting for listeners."""
        self._outbox.put_nowait(event)
        if self._delivery is None or self._delivery.done():
            self._delivery = asyncio.create_task(self._deliver_loop(), name="event-broadcaster")

    async def publish_queue(self, guild_id: int, snapshot: QueueSnapshot) -> None:
        await self.publish(QueueUpdated(guild_id=guild_id, queue=snapshot))

    async def publish_session_opened(self, guild_id: int, channel_id: int) -> None:
        await self.publish(SessionOpened(guild_id=guild_id, channel_id=channel_id))

    async def publish_session_closed(self, guild_id: int, reason: str) -> None:
        await self.publish(SessionClosed(guild_id=guild_id, reason=reason))

    async def flush(self) -> None:
        """Wait until every event published so far has reached its listeners."""
        await self._outbox.join()

    def collect_stats(self) -> StatsUpdated:
        source = self._stats_source
        return StatsUpdated(
            uptime_seconds=self.uptime_seconds(),
            session_count=source.get_session_count() if source else 0,
            total_pending_tracks=source.get_total_pending_tracks() if source else 0,
            guild_count=self._guild_count() if self._guild_count else 0,
        )

    async def publish_stats(self) -> StatsUpdated:
        stats = self.collect_stats()
        await self._bus.publish(stats)
        return stats

    def start(self, source: StatsSource, *, guild_count: Callable[[], int] | None = None) -> None:
        """Start emitting stats every ``stats_interval`` seconds.

        *guild_count* reports how many guilds the client is connected to.
        """
        self._stats_source = source
        self._guild_count = guild_count
        if self.is_running:
            logger.warning(LogTemplates.STATS_ALREADY_RUNNING)
            return

        self._task = asyncio.create_task(self._run_loop())
        logger.info(LogTemplates.STATS_STARTED, self._stats_interval)

    async def stop(self, *, flush_timeout: float = DEFAULT_FLUSH_TIMEOUT) -> None:
        """Stop the stats loop, then deliver what is left in the outbox."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info(LogTemplates.STATS_STOPPED)

        if self._delivery is not None:
            try:
                await asyncio.wait_for(self.flush(), timeout=flush_timeout)
            except TimeoutError:
                logger.warning(LogTemplates.BROADCAST_FLUSH_TIMEOUT, self._outbox.qsize())
            self._delivery.cancel()
            try:
                await self._delivery
            except asyncio.CancelledError:
                pass
            self._delivery = None

    async def _deliver_loop(self) -> None:
        while True:
            event = await self._outbox.get()
            try:
                await self._bus.publish(event)
            except Exception:
                logger.exception("Error delivering %s", type(event).__name__)
            finally:
                self._outbox.task_done()

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self._stats_interval)
            try:
                await self.publish_stats()
            except Exception:
                logger.exception("Error publishing stats")
