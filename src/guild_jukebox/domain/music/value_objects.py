"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from enum import Enum


class PlaybackState(Enum):
    """Playback state with enforced transitions.

    State transitions:
    - IDLE -> LOADING (pending queue became non-empty)
    - LOADING -> PLAYING (audio sink confirmed stream start)
    - PLAYING -> PAUSED (pause)
    - PAUSED -> PLAYING (resume)
    - LOADING / PLAYING / PAUSED -> LOADING (advance to next pending track)
    - LOADING / PLAYING / PAUSED -> IDLE (stop, or end of track with nothing pending)
    """

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"

    def can_transition_to(self, target: PlaybackState) -> bool:
        """Check if transition to target state is valid."""
        valid_transitions = {
            PlaybackState.IDLE: {PlaybackState.LOADING},
            PlaybackState.LOADING: {
                PlaybackState.PLAYING,
                PlaybackState.LOADING,
                PlaybackState.IDLE,
            },
            PlaybackState.PLAYING: {
                PlaybackState.PAUSED,
                PlaybackState.LOADING,
                PlaybackState.IDLE,
            },
            PlaybackState.PAUSED: {
                PlaybackState.PLAYING,
                PlaybackState.LOADING,
                PlaybackState.IDLE,
            },
        }
        return target in valid_transitions.get(self, set())

    @property
    def has_stream(self) -> bool:
        return self != PlaybackState.IDLE


class LoopMode(Enum):
    """Loop mode settings for queue playback.

    Stored and broadcast with the queue; advancing does not consult it.
    """

    NONE = "none"
    TRACK = "track"
    QUEUE = "queue"

    def next_mode(self) -> LoopMode:
        """Cycle to next loop mode."""
        modes = list(LoopMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class ProviderTag(Enum):
    """Which provider a resolved track's metadata came from."""

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"


class QueryKind(Enum):
    """Classification of a user query before resolution."""

    DIRECT_MEDIA_REFERENCE = "direct_media_reference"
    CATALOG_REFERENCE = "catalog_reference"
    FREE_TEXT_SEARCH = "free_text_search"


class SinkEventKind(Enum):
    """Signals emitted by the audio output sink."""

    STARTED = "started"
    PAUSED = "paused"
    RESUMED = "resumed"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def ends_track(self) -> bool:
        return self in {SinkEventKind.COMPLETED, SinkEventKind.ERRORED}
