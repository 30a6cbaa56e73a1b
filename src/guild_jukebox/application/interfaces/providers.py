"""Port interfaces for the media providers consulted while resolving tracks."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from guild_jukebox.domain.shared.types import (
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    PositiveInt,
)


class SearchCandidate(BaseModel):
    """One ranked result from the primary search provider."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    title: NonEmptyStr
    duration_seconds: DurationSeconds = 0
    thumbnail_url: HttpUrlStr | None = None
    source_url: HttpUrlStr


class StreamHandle(BaseModel):
    """A short-lived, directly playable audio stream for a track."""

    model_config = ConfigDict(frozen=True)

    url: NonEmptyStr
    source_url: HttpUrlStr


class CatalogTrack(BaseModel):
    """Canonical metadata from the catalog provider. Never playable by itself."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    title: NonEmptyStr
    artists: tuple[NonEmptyStr, ...] = ()
    duration_seconds: DurationSeconds = 0
    thumbnail_url: HttpUrlStr | None = None

    @property
    def primary_artist(self) -> str | None:
        return self.artists[0] if self.artists else None

    @property
    def search_query(self) -> str:
        return f"{self.primary_artist or ''} {self.title}".strip()

    @property
    def display_title(self) -> str:
        if self.primary_artist:
            return f"{self.primary_artist} - {self.title}"
        return self.title


class SearchProvider(ABC):
    """Primary provider: free-text search, direct lookups and stream handles.

    Implementations raise ``ResolutionError`` on provider failure and return
    empty results when nothing matched.
    """

    @abstractmethod
    async def search(self, query: NonEmptyStr, limit: PositiveInt = 1) -> list[SearchCandidate]:
        """Search for candidates matching free text, best match first."""
        ...

    @abstractmethod
    async def lookup(self, reference: HttpUrlStr) -> SearchCandidate | None:
        """Look up a direct media reference."""
        ...

    @abstractmethod
    async def open_stream(self, source_url: HttpUrlStr) -> StreamHandle:
        """Obtain a fresh playable stream for a resolved track's source."""
        ...


class CatalogProvider(ABC):
    """Metadata-only catalog lookups by reference id."""

    @abstractmethod
    async def get_track(self, reference_id: NonEmptyStr) -> CatalogTrack:
        ...

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""
        return None
