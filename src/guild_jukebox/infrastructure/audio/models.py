"""Typed views over raw yt-dlp output and the options handed to YoutubeDL.

yt-dlp returns loosely-typed dicts whose fields may be missing, empty or
of the wrong type. The models below keep only what the search provider
needs and normalise everything else to ``None``.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guild_jukebox.domain.shared.types import (
    HttpUrlStr,
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveInt,
)

CACHE_MAX_SIZE: Final[int] = 500
MAX_DURATION_SECONDS: Final[int] = 24 * 60 * 60
UNKNOWN_TITLE: Final[str] = "Unknown Title"

_HTTP_SCHEMES: Final[tuple[str, ...]] = ("http://", "https://")


def _text_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


class AudioFormatInfo(BaseModel):
    """One entry of the ``formats`` list; only audio-bearing ones matter."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: NonEmptyStr | None = None

    @property
    def has_audio(self) -> bool:
        return bool(self.url) and self.acodec != "none"


class YtDlpTrackInfo(BaseModel):
    """A single extracted video, reduced to candidate and stream fields."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    webpage_url: HttpUrlStr | None = None
    original_url: HttpUrlStr | None = None
    url: NonEmptyStr | None = None
    title: NonEmptyStr = UNKNOWN_TITLE
    duration: NonNegativeInt | None = None
    thumbnail: HttpUrlStr | None = None
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator("id", "url", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> str | None:
        return _text_or_none(v)

    @field_validator("webpage_url", "original_url", "thumbnail", mode="before")
    @classmethod
    def _http_only(cls, v: Any) -> str | None:
        # Search results report "ytsearch1:<query>" as their original_url.
        text = _text_or_none(v)
        if text is None or not text.lower().startswith(_HTTP_SCHEMES):
            return None
        return text

    @field_validator("title", mode="before")
    @classmethod
    def _title_or_placeholder(cls, v: Any) -> str:
        return _text_or_none(v) or UNKNOWN_TITLE

    @field_validator("duration", mode="before")
    @classmethod
    def _clamp_duration(cls, v: Any) -> int | None:
        try:
            seconds = int(v)
        except (TypeError, ValueError):
            return None
        if seconds < 0:
            return None
        return min(seconds, MAX_DURATION_SECONDS)

    @property
    def page_url(self) -> str | None:
        return self.webpage_url or self.original_url

    @property
    def stream_url(self) -> str | None:
        """Direct media URL, else the last (best) audio-bearing format."""
        if self.url:
            return self.url
        for fmt in reversed(self.formats):
            if fmt.has_audio:
                return fmt.url
        return None


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    infos: tuple[YtDlpTrackInfo, ...] = ()
    cached_at: NonNegativeFloat


class YtDlpOpts(BaseModel):
    """``YoutubeDL`` params; dumped with ``exclude_none`` before use."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    no_warnings: bool = True
    noprogress: bool = True
    noplaylist: bool = True
    skip_download: bool = True
    forceipv4: bool = True
    default_search: NonEmptyStr = "ytsearch"
    format: NonEmptyStr | None = None
    # Provider calls fail fast; nothing in the resolution path retries.
    retries: NonNegativeInt = 0
    extractor_retries: NonNegativeInt = 0
    socket_timeout: PositiveInt = 10
    http_chunk_size: PositiveInt = 1024 * 1024
