"""Playback Controller - the per-guild playback state machine.

Each controller owns one guild's :class:`GuildQueue` and a mailbox worked by a
single task. Commands from the front-end and signals from the audio sink go
through the same mailbox, so everything touching the queue runs one item at a
time in arrival order. Different guilds have different controllers and never
wait on each other.

Every stream handed to the sink is tagged with a generation number. Sink
events carrying an older generation belong to a stream that was already
replaced or stopped and are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from guild_jukebox.domain.music.entities import GuildQueue, QueueSnapshot, Requester, Track
from guild_jukebox.domain.music.value_objects import LoopMode, PlaybackState, SinkEventKind
from guild_jukebox.domain.shared.exceptions import SessionError, SessionErrorKind
from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates
from guild_jukebox.application.interfaces.audio_sink import SinkEvent

if TYPE_CHECKING:
    from guild_jukebox.application.interfaces.audio_sink import AudioSink
    from guild_jukebox.application.interfaces.providers import SearchProvider
    from guild_jukebox.application.services.broadcaster import EventBroadcaster
    from guild_jukebox.application.services.track_resolver import TrackResolver

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Command:
    name: str
    handler: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any] = field(repr=False)


class PlaybackController:
    """Serialized owner of one guild's queue and playback state."""

    def __init__(
        self,
        *,
        guild_id: int,
        resolver: TrackResolver,
        search_provider: SearchProvider,
        sink: AudioSink,
        broadcaster: EventBroadcaster,
        queue: GuildQueue | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._guild_id = guild_id
        self._resolver = resolver
        self._search = search_provider
        self._sink = sink
        self._broadcaster = broadcaster
        self._queue = queue or GuildQueue()
        self._rng = rng or random.Random()

        self._mailbox: asyncio.Queue[_Command | SinkEvent | None] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._generation = 0
        self._closed = False

    # === Introspection ===

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def state(self) -> PlaybackState:
        return self._queue.state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending_length(self) -> int:
        return self._queue.pending_length

    @property
    def is_closed(self) -> bool:
        return self._closed

    def snapshot(self) -> QueueSnapshot:
        return self._queue.snapshot()

    # === Lifecycle ===

    def start(self) -> None:
        if self._worker is None and not self._closed:
            self._worker = asyncio.create_task(
                self._run(), name=f"playback-controller-{self._guild_id}"
            )

    async def close(self) -> None:
        """Stop the worker, fail queued commands and silence the sink."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1

        worker = self._worker
        if worker is not None and worker is not asyncio.current_task():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        else:
            self._mailbox.put_nowait(None)
        self._fail_queued_commands()

        try:
            await self._sink.stop(self._guild_id)
        except Exception as e:
            logger.warning(LogTemplates.PLAYBACK_SINK_CALL_FAILED, "stop", self._guild_id, e)
        logger.info(LogTemplates.CONTROLLER_CLOSED, self._guild_id)

    def notify(self, event: SinkEvent) -> None:
        """Queue a sink event behind any commands already waiting."""
        if self._closed:
            return
        self._mailbox.put_nowait(event)

    # === Commands ===

    async def add_track(self, query: str, requester: Requester) -> Track:
        async def handler() -> Track:
            # Checked before resolving: a full queue makes no provider calls.
            self._queue.raise_if_full()
            track = await self._resolver.resolve(query, requester)
            position = self._queue.enqueue(track)
            logger.info(LogTemplates.QUEUE_ENQUEUED, track.title, position, self._guild_id)

            if self._queue.is_idle and self._queue.current_track is None:
                await self._advance()
            await self._emit()
            return track

        return await self._submit("add_track", handler)

    async def skip(self) -> Track | None:
        async def handler() -> Track | None:
            skipped = self._queue.current_track
            if skipped is None or self._queue.is_idle:
                return None

            await self._call_sink("stop", self._sink.stop(self._guild_id))
            logger.info(LogTemplates.TRACK_SKIPPED, skipped.title, self._guild_id)
            # Same path as a natural end of track from the sink.
            await self._handle_sink_event(
                SinkEvent(
                    guild_id=self._guild_id,
                    kind=SinkEventKind.COMPLETED,
                    generation=self._generation,
                )
            )
            return skipped

        return await self._submit("skip", handler)

    async def pause(self) -> bool:
        async def handler() -> bool:
            if not self._queue.is_playing:
                return False
            if not await self._call_sink("pause", self._sink.pause(self._guild_id)):
                return False
            self._set_state(PlaybackState.PAUSED)
            logger.debug(LogTemplates.PLAYBACK_PAUSED, self._guild_id)
            await self._emit()
            return True

        return await self._submit("pause", handler)

    async def resume(self) -> bool:
        async def handler() -> bool:
            if not self._queue.is_paused:
                return False
            if not await self._call_sink("resume", self._sink.resume(self._guild_id)):
                return False
            self._set_state(PlaybackState.PLAYING)
            logger.debug(LogTemplates.PLAYBACK_RESUMED, self._guild_id)
            await self._emit()
            return True

        return await self._submit("resume", handler)

    async def stop(self) -> bool:
        async def handler() -> bool:
            if self._queue.state.has_stream:
                await self._call_sink("stop", self._sink.stop(self._guild_id))
            self._generation += 1
            cleared = self._queue.pending_length
            self._queue.reset()
            logger.info(LogTemplates.PLAYBACK_STOPPED, cleared, self._guild_id)
            await self._emit()
            return True

        return await self._submit("stop", handler)

    async def remove_track(self, index: int) -> Track:
        async def handler() -> Track:
            track = self._queue.remove_at(index)
            logger.info(LogTemplates.QUEUE_REMOVED, track.title, index, self._guild_id)
            await self._emit()
            return track

        return await self._submit("remove_track", handler)

    async def set_volume(self, volume: float) -> int:
        async def handler() -> int:
            applied = self._queue.set_volume(volume)
            if self._queue.state.has_stream:
                try:
                    self._sink.set_volume(self._guild_id, applied)
                except Exception as e:
                    logger.warning(
                        LogTemplates.PLAYBACK_SINK_CALL_FAILED, "set_volume", self._guild_id, e
                    )
            logger.info(LogTemplates.VOLUME_CHANGED, applied, self._guild_id)
            await self._emit()
            return applied

        return await self._submit("set_volume", handler)

    async def toggle_shuffle(self) -> bool:
        async def handler() -> bool:
            enabled = self._queue.toggle_shuffle(self._rng)
            logger.info(LogTemplates.SHUFFLE_TOGGLED, enabled, self._guild_id)
            await self._emit()
            return enabled

        return await self._submit("toggle_shuffle", handler)

    async def set_loop_mode(self, mode: LoopMode) -> LoopMode:
        async def handler() -> LoopMode:
            self._queue.loop_mode = mode
            logger.info(LogTemplates.LOOP_MODE_CHANGED, mode.value, self._guild_id)
            await self._emit()
            return mode

        return await self._submit("set_loop_mode", handler)

    async def drain(self) -> None:
        """Wait until every command and sink event queued before this call has run."""

        async def handler() -> None:
            return None

        await self._submit("drain", handler)

    # === Mailbox ===

    async def _submit(self, name: str, handler: Callable[[], Awaitable[Any]]) -> Any:
        if self._closed:
            raise SessionError(
                SessionErrorKind.NO_ACTIVE_SESSION,
                self._guild_id,
                ErrorMessages.SESSION_CLOSED.format(guild_id=self._guild_id),
            )
        self.start()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._mailbox.put_nowait(_Command(name=name, handler=handler, future=future))
        return await future

    async def _run(self) -> None:
        while not self._closed:
            item = await self._mailbox.get()
            if item is None:
                break
            if isinstance(item, SinkEvent):
                try:
                    await self._handle_sink_event(item)
                except Exception:
                    logger.exception("Error handling sink event for guild %s", self._guild_id)
                continue
            await self._execute(item)

    async def _execute(self, command: _Command) -> None:
        logger.debug(LogTemplates.CONTROLLER_COMMAND, command.name, self._guild_id)
        try:
            result = await command.handler()
        except asyncio.CancelledError:
            self._fail(command)
            raise
        except Exception as e:
            if not command.future.done():
                command.future.set_exception(e)
        else:
            if not command.future.done():
                command.future.set_result(result)

    def _fail(self, command: _Command) -> None:
        if not command.future.done():
            command.future.set_exception(
                SessionError(
                    SessionErrorKind.NO_ACTIVE_SESSION,
                    self._guild_id,
                    ErrorMessages.SESSION_CLOSED.format(guild_id=self._guild_id),
                )
            )

    def _fail_queued_commands(self) -> None:
        while not self._mailbox.empty():
            item = self._mailbox.get_nowait()
            if isinstance(item, _Command):
                self._fail(item)

    # === Sink events and advancing ===

    async def _handle_sink_event(self, event: SinkEvent) -> None:
        if event.generation != self._generation:
            logger.debug(
                LogTemplates.SINK_EVENT_STALE,
                event.kind.value,
                event.generation,
                self._generation,
                self._guild_id,
            )
            return

        state = self._queue.state
        if event.kind is SinkEventKind.STARTED:
            if state is not PlaybackState.LOADING:
                return
            self._set_state(PlaybackState.PLAYING)
            logger.info(LogTemplates.TRACK_STARTED, self._current_title(), self._guild_id)
        elif event.kind in (SinkEventKind.PAUSED, SinkEventKind.RESUMED):
            # Echoes of pause()/resume(); the state was already set when the command ran.
            logger.debug(LogTemplates.SINK_EVENT_ACK, event.kind.value, self._guild_id)
            return
        elif event.kind.ends_track:
            if state is PlaybackState.IDLE:
                return
            if event.kind is SinkEventKind.ERRORED:
                logger.warning(
                    LogTemplates.PLAYBACK_ERROR, self._current_title(), self._guild_id, event.error
                )
            else:
                logger.info(LogTemplates.TRACK_FINISHED, self._current_title(), self._guild_id)
            await self._advance()

        await self._emit()

    async def _advance(self) -> None:
        """Move the next pending track into the current slot and start its stream.

        A track whose stream cannot be opened or started counts as finished,
        so the loop moves on to the one after it.
        """
        while True:
            self._generation += 1
            track = self._queue.pop_next()
            if track is None:
                self._set_state(PlaybackState.IDLE)
                logger.info(LogTemplates.QUEUE_EXHAUSTED, self._guild_id)
                return

            self._set_state(PlaybackState.LOADING)
            generation = self._generation
            try:
                stream = await self._search.open_stream(track.source_url)
                started = await self._sink.play(
                    self._guild_id,
                    stream,
                    volume=self._queue.volume,
                    generation=generation,
                )
            except Exception as e:
                logger.warning(LogTemplates.PLAYBACK_STREAM_FAILED, track.title, self._guild_id, e)
                started = False

            if started:
                logger.info(LogTemplates.TRACK_LOADING, track.title, generation, self._guild_id)
                return
            logger.warning(LogTemplates.PLAYBACK_TRACK_UNPLAYABLE, track.title, self._guild_id)

    # === Helpers ===

    def _set_state(self, new_state: PlaybackState) -> None:
        if self._queue.state is new_state and new_state is not PlaybackState.LOADING:
            return
        self._queue.transition_to(new_state)

    def _current_title(self) -> str:
        track = self._queue.current_track
        return track.title if track else "<none>"

    async def _call_sink(self, operation: str, call: Awaitable[bool]) -> bool:
        try:
            return await call
        except Exception as e:
            logger.warning(LogTemplates.PLAYBACK_SINK_CALL_FAILED, operation, self._guild_id, e)
            return False

    async def _emit(self) -> None:
        await self._broadcaster.publish_queue(self._guild_id, self._queue.snapshot())
