"""Ports implemented by the infrastructure layer."""

from guild_jukebox.application.interfaces.audio_sink import AudioSink, SinkEvent, SinkEventHandler
from guild_jukebox.application.interfaces.providers import (
    CatalogProvider,
    CatalogTrack,
    SearchCandidate,
    SearchProvider,
    StreamHandle,
)

__all__ = [
    "AudioSink",
    "CatalogProvider",
    "CatalogTrack",
    "SearchCandidate",
    "SearchProvider",
    "SinkEvent",
    "SinkEventHandler",
    "StreamHandle",
]
