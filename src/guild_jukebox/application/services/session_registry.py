"""Session Registry - at most one playback session per guild."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from guild_jukebox.application.services.playback_controller import PlaybackController
from guild_jukebox.domain.music.entities import GuildQueue, QueueSnapshot
from guild_jukebox.domain.shared.exceptions import SessionError, SessionErrorKind
from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates
from guild_jukebox.domain.shared.types import MAX_VOLUME, utcnow

if TYPE_CHECKING:
    from guild_jukebox.application.interfaces.audio_sink import AudioSink, SinkEvent
    from guild_jukebox.application.interfaces.providers import SearchProvider
    from guild_jukebox.application.services.broadcaster import EventBroadcaster
    from guild_jukebox.application.services.track_resolver import TrackResolver

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT: float = 30.0


@dataclass(slots=True)
class GuildSession:
    """A guild's voice channel binding and the controller that owns its queue."""

    guild_id: int
    channel_id: int
    controller: PlaybackController
    notification_channel_id: int | None = None
    created_at: datetime = field(default_factory=utcnow)

    def snapshot(self) -> QueueSnapshot:
        return self.controller.snapshot()


class SessionRegistry:
    """Creates, looks up and tears down guild sessions.

    Joins for the same guild are serialized by a per-guild lock; different
    guilds never contend. The registry is also the audio sink's event handler
    and forwards each event to the controller of the guild it belongs to.
    """

    def __init__(
        self,
        *,
        resolver: TrackResolver,
        search_provider: SearchProvider,
        sink: AudioSink,
        broadcaster: EventBroadcaster,
        default_volume: int = MAX_VOLUME,
        max_queue_size: int = GuildQueue.DEFAULT_MAX_SIZE,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        rng: random.Random | None = None,
    ) -> None:
        self._resolver = resolver
        self._search = search_provider
        self._sink = sink
        self._broadcaster = broadcaster
        self._default_volume = default_volume
        self._max_queue_size = max_queue_size
        self._connect_timeout = connect_timeout
        self._rng = rng

        self._sessions: dict[int, GuildSession] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}

        sink.set_event_handler(self._route_sink_event)

    # === Session Lifecycle ===

    @asynccontextmanager
    async def _guild_lock(self, guild_id: int) -> AsyncIterator[None]:
        """Hold the guild's lock; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.get(guild_id)
        if lock is None:
            lock = self._locks[guild_id] = asyncio.Lock()
        self._lock_users[guild_id] = self._lock_users.get(guild_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[guild_id] - 1
            if remaining:
                self._lock_users[guild_id] = remaining
            else:
                del self._lock_users[guild_id]
                del self._locks[guild_id]

    async def join(
        self,
        guild_id: int,
        channel_id: int,
        *,
        notification_channel_id: int | None = None,
    ) -> GuildSession:
        """Return the guild's session, connecting to *channel_id* if there is none."""
        async with self._guild_lock(guild_id):
            existing = self._sessions.get(guild_id)
            if existing is not None:
                if existing.channel_id != channel_id:
                    raise SessionError(
                        SessionErrorKind.CHANNEL_CONFLICT,
                        guild_id,
                        ErrorMessages.CHANNEL_CONFLICT.format(
                            guild_id=guild_id,
                            channel_id=existing.channel_id,
                            requested=channel_id,
                        ),
                    )
                if notification_channel_id is not None:
                    existing.notification_channel_id = notification_channel_id
                return existing

            connected = await self._sink.connect(
                guild_id, channel_id, timeout=self._connect_timeout
            )
            if not connected:
                raise SessionError(
                    SessionErrorKind.CONNECT_FAILED,
                    guild_id,
                    ErrorMessages.CONNECT_FAILED.format(channel_id=channel_id),
                )

            controller = PlaybackController(
                guild_id=guild_id,
                resolver=self._resolver,
                search_provider=self._search,
                sink=self._sink,
                broadcaster=self._broadcaster,
                queue=GuildQueue(volume=self._default_volume, max_size=self._max_queue_size),
                rng=self._rng,
            )
            controller.start()
            session = GuildSession(
                guild_id=guild_id,
                channel_id=channel_id,
                controller=controller,
                notification_channel_id=notification_channel_id,
            )
            self._sessions[guild_id] = session

        logger.info(LogTemplates.SESSION_OPENED, guild_id, channel_id)
        await self._broadcaster.publish_session_opened(guild_id, channel_id)
        return session

    def get(self, guild_id: int) -> GuildSession:
        session = self._sessions.get(guild_id)
        if session is None:
            raise SessionError(
                SessionErrorKind.NO_ACTIVE_SESSION,
                guild_id,
                ErrorMessages.NO_ACTIVE_SESSION.format(guild_id=guild_id),
            )
        return session

    def find(self, guild_id: int) -> GuildSession | None:
        return self._sessions.get(guild_id)

    async def disconnect(self, guild_id: int, *, reason: str = "disconnect") -> None:
        async with self._guild_lock(guild_id):
            session = self._sessions.pop(guild_id, None)
            if session is None:
                raise SessionError(
                    SessionErrorKind.NO_ACTIVE_SESSION,
                    guild_id,
                    ErrorMessages.NO_ACTIVE_SESSION.format(guild_id=guild_id),
                )
            await self._teardown(session, reason)

    async def cleanup(self, guild_id: int | None = None, *, reason: str = "cleanup") -> int:
        """Tear down one guild's session, or every session when *guild_id* is None.

        Returns the number of sessions removed. A guild without a session is
        not an error.
        """
        targets = [guild_id] if guild_id is not None else list(self._sessions)
        removed = 0
        for target in targets:
            async with self._guild_lock(target):
                session = self._sessions.pop(target, None)
                if session is None:
                    continue
                await self._teardown(session, reason)
                removed += 1

        if removed:
            logger.info(LogTemplates.SESSION_CLEANED_UP, removed)
        return removed

    async def _teardown(self, session: GuildSession, reason: str) -> None:
        await session.controller.close()
        try:
            await self._sink.disconnect(session.guild_id)
        except Exception as e:
            logger.warning(
                LogTemplates.PLAYBACK_SINK_CALL_FAILED, "disconnect", session.guild_id, e
            )
        logger.info(LogTemplates.SESSION_CLOSED, session.guild_id, reason)
        await self._broadcaster.publish_session_closed(session.guild_id, reason)

    # === Queries ===

    def get_queue(self, guild_id: int) -> QueueSnapshot | None:
        session = self._sessions.get(guild_id)
        return session.snapshot() if session else None

    def get_session_count(self) -> int:
        return len(self._sessions)

    def get_total_pending_tracks(self) -> int:
        return sum(session.controller.pending_length for session in self._sessions.values())

    def guild_ids(self) -> list[int]:
        return list(self._sessions)

    # === Sink Event Routing ===

    def _route_sink_event(self, event: SinkEvent) -> None:
        session = self._sessions.get(event.guild_id)
        if session is None:
            logger.debug(LogTemplates.SESSION_EVENT_UNROUTED, event.kind.value, event.guild_id)
            return
        session.controller.notify(event)
