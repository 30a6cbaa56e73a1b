"""Application services."""

from guild_jukebox.application.services.broadcaster import EventBroadcaster
from guild_jukebox.application.services.playback_controller import PlaybackController
from guild_jukebox.application.services.session_registry import GuildSession, SessionRegistry
from guild_jukebox.application.services.track_resolver import TrackResolver

__all__ = [
    "EventBroadcaster",
    "GuildSession",
    "PlaybackController",
    "SessionRegistry",
    "TrackResolver",
]
