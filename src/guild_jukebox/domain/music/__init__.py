"""Music domain - tracks, guild queues and playback states."""

from guild_jukebox.domain.music.entities import (
    GuildQueue,
    QueueSnapshot,
    Requester,
    Track,
)
from guild_jukebox.domain.music.value_objects import (
    LoopMode,
    PlaybackState,
    ProviderTag,
    QueryKind,
    SinkEventKind,
)

__all__ = [
    "GuildQueue",
    "LoopMode",
    "PlaybackState",
    "ProviderTag",
    "QueryKind",
    "QueueSnapshot",
    "Requester",
    "SinkEventKind",
    "Track",
]
