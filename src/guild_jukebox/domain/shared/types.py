"""Annotated pydantic constraints shared by the domain and adapter models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

MIN_VOLUME: int = 0
MAX_VOLUME: int = 100
MAX_TRACK_SECONDS: int = 24 * 60 * 60

# Discord ids are unsigned 64-bit snowflakes.
DiscordSnowflake = Annotated[int, Field(gt=0, lt=2**64)]

NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveInt = Annotated[int, Field(gt=0)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]

VolumePercent = Annotated[int, Field(ge=MIN_VOLUME, le=MAX_VOLUME)]

DurationSeconds = Annotated[int, Field(ge=0, le=MAX_TRACK_SECONDS)]
"""Track length in whole seconds; 0 marks a live stream or unknown length."""

NonEmptyStr = Annotated[str, Field(min_length=1)]
TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
HttpUrlStr = Annotated[str, Field(pattern=r"^https?://")]


def _require_aware(v: datetime) -> datetime:
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_require_aware)]


def utcnow() -> datetime:
    return datetime.now(UTC)
