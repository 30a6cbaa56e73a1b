"""Core domain entities for the music bounded context."""

from __future__ import annotations

import math
import random
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from guild_jukebox.domain.music.value_objects import LoopMode, PlaybackState, ProviderTag
from guild_jukebox.domain.shared.exceptions import (
    InvalidOperationError,
    ValidationError,
    ValidationErrorKind,
)
from guild_jukebox.domain.shared.messages import ErrorMessages
from guild_jukebox.domain.shared.types import (
    MAX_VOLUME,
    MIN_VOLUME,
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    NonNegativeInt,
    TrackTitleStr,
    UtcDatetimeField,
    VolumePercent,
    utcnow,
)


class Requester(BaseModel):
    """The user who asked for a track."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: DiscordSnowflake
    username: NonEmptyStr
    avatar_url: HttpUrlStr | None = None


class Track(BaseModel):
    """Immutable value object representing a resolved, playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: NonEmptyStr
    title: TrackTitleStr
    duration_seconds: DurationSeconds = 0
    thumbnail_url: HttpUrlStr | None = None
    source_url: HttpUrlStr
    requester: Requester
    provider: ProviderTag = ProviderTag.YOUTUBE

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if not self.duration_seconds:
            return "Live"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def display_title(self) -> str:
        if self.duration_seconds:
            return f"{self.title} [{self.duration_formatted}]"
        return self.title


class QueueSnapshot(BaseModel):
    """Serializable point-in-time copy of a guild queue."""

    model_config = ConfigDict(frozen=True)

    pending: tuple[Track, ...] = ()
    current_track: Track | None = None
    state: PlaybackState = PlaybackState.IDLE
    playing: bool = False
    paused: bool = False
    volume: VolumePercent = MAX_VOLUME
    loop_mode: LoopMode = LoopMode.NONE
    shuffle: bool = False
    total_duration_seconds: NonNegativeInt = 0
    taken_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def pending_length(self) -> int:
        return len(self.pending)


class GuildQueue(BaseModel):
    """Pending tracks, current track and playback flags for one guild.

    Only the guild's playback controller mutates an instance; everything else
    reads :meth:`snapshot`.
    """

    model_config = ConfigDict(strict=True)

    DEFAULT_MAX_SIZE: ClassVar[int] = 100

    pending: list[Track] = Field(default_factory=list)
    current_track: Track | None = None
    state: PlaybackState = PlaybackState.IDLE
    volume: VolumePercent = MAX_VOLUME
    loop_mode: LoopMode = LoopMode.NONE
    shuffle: bool = False
    max_size: NonNegativeInt = DEFAULT_MAX_SIZE

    @property
    def pending_length(self) -> int:
        return len(self.pending)

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self.state == PlaybackState.PAUSED

    @property
    def is_idle(self) -> bool:
        return self.state == PlaybackState.IDLE

    @property
    def is_full(self) -> bool:
        """True when pending holds ``max_size`` tracks; a zero limit never fills."""
        return bool(self.max_size) and len(self.pending) >= self.max_size

    def raise_if_full(self) -> None:
        if self.is_full:
            raise ValidationError(
                ValidationErrorKind.QUEUE_FULL,
                ErrorMessages.QUEUE_FULL.format(max_size=self.max_size),
                field="pending",
            )

    def enqueue(self, track: Track) -> int:
        """Append a track to the pending tail and return its position."""
        self.raise_if_full()
        self.pending.append(track)
        return len(self.pending) - 1

    def pop_next(self) -> Track | None:
        """Move the pending head into the current slot."""
        if not self.pending:
            self.current_track = None
            return None
        self.current_track = self.pending.pop(0)
        return self.current_track

    def remove_at(self, index: int) -> Track:
        if not 0 <= index < len(self.pending):
            raise ValidationError(
                ValidationErrorKind.INDEX_OUT_OF_RANGE,
                ErrorMessages.INDEX_OUT_OF_RANGE.format(index=index, length=len(self.pending)),
                field="index",
            )
        return self.pending.pop(index)

    def clear(self) -> int:
        """Drop pending and current tracks, returning the number of pending tracks removed."""
        count = len(self.pending)
        self.pending.clear()
        self.current_track = None
        return count

    def set_volume(self, volume: float) -> int:
        if isinstance(volume, bool) or not isinstance(volume, int | float) or not math.isfinite(volume):
            raise ValidationError(
                ValidationErrorKind.VOLUME_OUT_OF_RANGE,
                ErrorMessages.VOLUME_NOT_A_NUMBER.format(volume=volume),
                field="volume",
            )
        self.volume = int(round(max(MIN_VOLUME, min(MAX_VOLUME, volume))))
        return self.volume

    def toggle_shuffle(self, rng: random.Random | None = None) -> bool:
        """Flip the shuffle flag; permute pending once on each off-to-on edge."""
        self.shuffle = not self.shuffle
        if self.shuffle and len(self.pending) > 1:
            (rng or random).shuffle(self.pending)
        return self.shuffle

    def transition_to(self, new_state: PlaybackState) -> None:
        if not self.state.can_transition_to(new_state):
            raise InvalidOperationError(
                operation=f"transition to {new_state.value}",
                current_state=self.state.value,
            )
        self.state = new_state

    def reset(self) -> None:
        """Return to idle with nothing current or pending."""
        self.clear()
        self.state = PlaybackState.IDLE

    def total_duration_seconds(self) -> int:
        total = sum(track.duration_seconds for track in self.pending)
        if self.current_track is not None:
            total += self.current_track.duration_seconds
        return total

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            pending=tuple(self.pending),
            current_track=self.current_track,
            state=self.state,
            playing=self.is_playing,
            paused=self.is_paused,
            volume=self.volume,
            loop_mode=self.loop_mode,
            shuffle=self.shuffle,
            total_duration_seconds=self.total_duration_seconds(),
        )
