"""
Unit Tests for EventBroadcaster and EventBus

Tests for:
- Queue snapshot and session event delivery
- Periodic stats emission
- Handler isolation in the event bus
"""

import asyncio

import pytest

from conftest import GUILD_ID
from guild_jukebox.application.services.broadcaster import EventBroadcaster
from guild_jukebox.domain.music.entities import GuildQueue
from guild_jukebox.domain.shared.events import (
    EventBus,
    QueueUpdated,
    SessionClosed,
    SessionOpened,
    StatsUpdated,
)


class StaticStats:
    def __init__(self, sessions: int = 0, pending: int = 0) -> None:
        self.sessions = sessions
        self.pending = pending

    def get_session_count(self) -> int:
        return self.sessions

    def get_total_pending_tracks(self) -> int:
        return self.pending


# =============================================================================
# EventBus Tests
# =============================================================================


class TestEventBus:
    """Tests for the in-memory event bus."""

    @pytest.mark.asyncio
    async def test_publish_reaches_subscribers_of_that_type(self):
        bus = EventBus()
        opened, stats = [], []

        async def on_opened(event):
            opened.append(event)

        async def on_stats(event):
            stats.append(event)

        bus.subscribe(SessionOpened, on_opened)
        bus.subscribe(StatsUpdated, on_stats)

        await bus.publish(SessionOpened(guild_id=GUILD_ID, channel_id=1))

        assert len(opened) == 1
        assert stats == []

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        received = []

        async def broken(event):
            raise RuntimeError("boom")

        async def working(event):
            received.append(event)

        bus.subscribe(SessionOpened, broken)
        bus.subscribe(SessionOpened, working)

        await bus.publish(SessionOpened(guild_id=GUILD_ID, channel_id=1))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_and_clear(self):
        bus = EventBus()

        async def handler(event):
            pass

        bus.subscribe(QueueUpdated, handler)
        assert bus.handler_count(QueueUpdated) == 1
        bus.unsubscribe(QueueUpdated, handler)
        assert bus.handler_count(QueueUpdated) == 0

        bus.subscribe(QueueUpdated, handler)
        bus.clear()
        assert bus.handler_count(QueueUpdated) == 0


# =============================================================================
# EventBroadcaster Tests
# =============================================================================


class TestEventBroadcaster:
    """Tests for the broadcaster facade."""

    @pytest.mark.asyncio
    async def test_publish_queue_wraps_snapshot(self):
        broadcaster = EventBroadcaster()
        received = []

        async def record(event):
            received.append(event)

        broadcaster.subscribe_queue_updates(record)
        snapshot = GuildQueue(volume=40).snapshot()

        await broadcaster.publish_queue(GUILD_ID, snapshot)
        await broadcaster.flush()

        assert received[0].guild_id == GUILD_ID
        assert received[0].queue.volume == 40
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_publish_without_listeners_is_fine(self):
        broadcaster = EventBroadcaster()
        await broadcaster.publish_queue(GUILD_ID, GuildQueue().snapshot())
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_listeners(self):
        broadcaster = EventBroadcaster()
        release = asyncio.Event()
        received = []

        async def slow(event):
            await release.wait()
            received.append(event)

        broadcaster.bus.subscribe(SessionOpened, slow)

        await asyncio.wait_for(broadcaster.publish_session_opened(GUILD_ID, 1), timeout=1)
        assert received == []

        release.set()
        await broadcaster.flush()
        assert len(received) == 1
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_events_are_delivered_in_publish_order(self):
        broadcaster = EventBroadcaster()
        received = []

        async def record(event):
            received.append(event)

        broadcaster.bus.subscribe(SessionOpened, record)
        broadcaster.bus.subscribe(SessionClosed, record)
        broadcaster.subscribe_queue_updates(record)

        await broadcaster.publish_session_opened(GUILD_ID, 1)
        await broadcaster.publish_queue(GUILD_ID, GuildQueue(volume=10).snapshot())
        await broadcaster.publish_queue(GUILD_ID, GuildQueue(volume=20).snapshot())
        await broadcaster.publish_session_closed(GUILD_ID, "done")
        await broadcaster.flush()

        assert [type(e) for e in received] == [SessionOpened, QueueUpdated, QueueUpdated, SessionClosed]
        assert [e.queue.volume for e in received if isinstance(e, QueueUpdated)] == [10, 20]
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_stop_delivers_pending_events(self):
        broadcaster = EventBroadcaster()
        received = []

        async def record(event):
            received.append(event)

        broadcaster.bus.subscribe(SessionClosed, record)
        await broadcaster.publish_session_closed(GUILD_ID, "shutdown")

        await broadcaster.stop()

        assert [e.reason for e in received] == ["shutdown"]

    @pytest.mark.asyncio
    async def test_stop_gives_up_on_stuck_listener(self):
        broadcaster = EventBroadcaster()

        async def stuck(event):
            await asyncio.Event().wait()

        broadcaster.bus.subscribe(SessionOpened, stuck)
        await broadcaster.publish_session_opened(GUILD_ID, 1)

        await asyncio.wait_for(broadcaster.stop(flush_timeout=0.05), timeout=1)

    def test_collect_stats_without_source(self):
        stats = EventBroadcaster().collect_stats()
        assert stats.session_count == 0
        assert stats.total_pending_tracks == 0
        assert stats.guild_count == 0
        assert stats.uptime_seconds >= 0

    @pytest.mark.asyncio
    async def test_collect_stats_reports_guild_count(self):
        broadcaster = EventBroadcaster(stats_interval=10)
        broadcaster.start(StaticStats(sessions=1, pending=3), guild_count=lambda: 4)

        stats = broadcaster.collect_stats()

        assert (stats.session_count, stats.total_pending_tracks, stats.guild_count) == (1, 3, 4)
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_stats_loop_emits_periodically(self):
        broadcaster = EventBroadcaster(stats_interval=0.01)
        received = []

        async def record(event):
            received.append(event)

        broadcaster.subscribe_stats(record)
        broadcaster.start(StaticStats(sessions=2, pending=7))
        assert broadcaster.is_running

        for _ in range(200):
            if len(received) >= 2:
                break
            await asyncio.sleep(0.01)
        await broadcaster.stop()

        assert len(received) >= 2
        assert received[0].session_count == 2
        assert received[0].total_pending_tracks == 7
        assert not broadcaster.is_running

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_loop(self):
        broadcaster = EventBroadcaster(stats_interval=10)
        broadcaster.start(StaticStats())
        task = broadcaster._task

        broadcaster.start(StaticStats(sessions=1))

        assert broadcaster._task is task
        assert broadcaster.collect_stats().session_count == 1
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_started(self):
        await EventBroadcaster().stop()
