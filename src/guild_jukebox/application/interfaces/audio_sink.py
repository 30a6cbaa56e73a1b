"""Port interface for the audio output sink (voice connection + playback)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from guild_jukebox.application.interfaces.providers import StreamHandle
from guild_jukebox.domain.music.value_objects import SinkEventKind
from guild_jukebox.domain.shared.types import (
    DiscordSnowflake,
    NonNegativeInt,
    PositiveInt,
    VolumePercent,
)


class SinkEvent(BaseModel):
    """A playback signal from the sink, tagged with the generation it belongs to."""

    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    kind: SinkEventKind
    generation: NonNegativeInt
    error: str | None = None


SinkEventHandler = Callable[[SinkEvent], None]


class AudioSink(ABC):
    """Interface for voice connections and stream playback.

    Events are delivered through the handler registered with
    :meth:`set_event_handler`, always on the event loop thread.
    """

    @abstractmethod
    def set_event_handler(self, handler: SinkEventHandler) -> None:
        ...

    @abstractmethod
    async def connect(
        self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake, *, timeout: float
    ) -> bool:
        """Connect to a voice channel, giving up after *timeout* seconds."""
        ...

    @abstractmethod
    async def disconnect(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def play(
        self,
        guild_id: DiscordSnowflake,
        stream: StreamHandle,
        *,
        volume: VolumePercent,
        generation: PositiveInt,
    ) -> bool:
        """Start playing *stream*; events for it carry *generation*."""
        ...

    @abstractmethod
    async def stop(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def pause(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    async def resume(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    def set_volume(self, guild_id: DiscordSnowflake, volume: VolumePercent) -> bool:
        """Apply *volume* to the live stream without interrupting it."""
        ...

    @abstractmethod
    def is_connected(self, guild_id: DiscordSnowflake) -> bool:
        ...
