"""SearchProvider implementation using yt-dlp for lookups, search and streams."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from typing import Any, Final, cast

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from guild_jukebox.application.interfaces.providers import (
    SearchCandidate,
    SearchProvider,
    StreamHandle,
)
from guild_jukebox.config.settings import AudioSettings
from guild_jukebox.domain.shared.exceptions import ResolutionError
from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates
from guild_jukebox.infrastructure.audio.models import (
    CACHE_MAX_SIZE,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

HASH_ID_LENGTH: Final[int] = 16
LOG_URL_TRUNCATE: Final[int] = 60
DEFAULT_FORMAT: Final[str] = "251/140/bestaudio[protocol^=http]/bestaudio/best"

UNAVAILABLE_MARKERS: Final[tuple[str, ...]] = (
    "unavailable",
    "private video",
    "does not exist",
    "not found",
    "unsupported url",
)

YOUTUBE_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"
)


def _generate_track_id(url: str) -> str:
    match = YOUTUBE_ID_PATTERN.search(url)
    if match:
        return match.group(1)

    return hashlib.sha256(url.encode()).hexdigest()[:HASH_ID_LENGTH]


def _map_download_error(error: DownloadError, target: str) -> ResolutionError:
    message = str(error)
    if any(marker in message.lower() for marker in UNAVAILABLE_MARKERS):
        return ResolutionError.not_found(ErrorMessages.MEDIA_UNAVAILABLE.format(url=target))
    return ResolutionError.provider_unavailable(
        ErrorMessages.SEARCH_PROVIDER_FAILED.format(error=message)
    )


class YtDlpSearchProvider(SearchProvider):
    """Primary provider backed by yt-dlp.

    yt-dlp is blocking, so every extraction runs in a worker thread. Lookup and
    search results are cached for ``search_cache_ttl_seconds``; stream handles
    never are, because the media URLs they carry expire.
    """

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()
        self._cache_ttl = self._settings.search_cache_ttl_seconds
        self._base_opts = YtDlpOpts(format=self._settings.ytdlp_format or DEFAULT_FORMAT)
        self._info_cache: dict[str, CacheEntry] = {}

    # === SearchProvider ===

    async def search(self, query: str, limit: int = 1) -> list[SearchCandidate]:
        infos = await asyncio.to_thread(self._search_sync, query, limit)
        candidates: list[SearchCandidate] = []
        for info in infos:
            candidate = self._info_to_candidate(info)
            if candidate is not None:
                candidates.append(candidate)
        return candidates[:limit]

    async def lookup(self, reference: str) -> SearchCandidate | None:
        if not reference.lower().startswith(("http://", "https://")):
            reference = f"https://{reference}"
        info = await asyncio.to_thread(self._extract_info_sync, reference)
        if info is None:
            return None
        return self._info_to_candidate(info, fallback_url=reference)

    async def open_stream(self, source_url: str) -> StreamHandle:
        info = await asyncio.to_thread(self._extract_info_sync, source_url, use_cache=False)
        stream_url = info.stream_url if info else None
        if not stream_url:
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, source_url[:LOG_URL_TRUNCATE])
            raise ResolutionError.not_found(ErrorMessages.NO_STREAM_URL.format(url=source_url))
        return StreamHandle(url=stream_url, source_url=source_url)

    # === Cache ===

    def clear_cache(self) -> int:
        count = len(self._info_cache)
        self._info_cache.clear()
        return count

    def prune_cache(self) -> int:
        now = time.time()
        expired = [
            key for key, entry in self._info_cache.items() if now - entry.cached_at >= self._cache_ttl
        ]
        for key in expired:
            self._info_cache.pop(key, None)
        if expired:
            logger.debug(LogTemplates.CACHE_EXPIRED_PRUNED, len(expired))
        return len(expired)

    def _cache_get(self, key: str) -> CacheEntry | None:
        cached = self._info_cache.get(key)
        if cached is None:
            return None
        if time.time() - cached.cached_at < self._cache_ttl:
            logger.debug(LogTemplates.CACHE_HIT, key[:LOG_URL_TRUNCATE])
            return cached
        self._info_cache.pop(key, None)
        return None

    def _cache_put(self, key: str, infos: tuple[YtDlpTrackInfo, ...]) -> None:
        if self._cache_ttl <= 0:
            return
        self._info_cache[key] = CacheEntry(infos=infos, cached_at=time.time())
        if len(self._info_cache) > CACHE_MAX_SIZE:
            self.prune_cache()

    # === yt-dlp calls (worker thread) ===

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    @staticmethod
    def _parse_info(data: dict[str, Any]) -> YtDlpTrackInfo:
        return YtDlpTrackInfo.model_validate(data)

    def _extract(self, target: str) -> Any:
        try:
            with YoutubeDL(params=cast(Any, self._get_opts().model_dump(exclude_none=True))) as ydl:
                return ydl.extract_info(target, download=False)
        except DownloadError as e:
            logger.warning(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, target[:LOG_URL_TRUNCATE], e)
            raise _map_download_error(e, target) from e
        except Exception as e:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, target[:LOG_URL_TRUNCATE], e)
            raise ResolutionError.provider_unavailable(
                ErrorMessages.SEARCH_PROVIDER_FAILED.format(error=e)
            ) from e

    def _extract_info_sync(self, url: str, use_cache: bool = True) -> YtDlpTrackInfo | None:
        if use_cache:
            cached = self._cache_get(url)
            if cached is not None:
                return cached.infos[0] if cached.infos else None

        data = self._extract(url)
        if isinstance(data, dict) and data.get("entries") is not None:
            entries = [e for e in data["entries"] or [] if isinstance(e, dict)]
            data = entries[0] if entries else None
        result = self._parse_info(dict(data)) if isinstance(data, dict) else None

        self._cache_put(url, (result,) if result else ())
        return result

    def _search_sync(self, query: str, limit: int = 1) -> list[YtDlpTrackInfo]:
        key = f"ytsearch{limit}:{query}"
        cached = self._cache_get(key)
        if cached is not None:
            return list(cached.infos)

        data = self._extract(key)
        if not isinstance(data, dict):
            return []
        entries = data.get("entries") or []
        if not isinstance(entries, list):
            return []

        results = [self._parse_info(dict(e)) for e in entries if isinstance(e, dict)]
        self._cache_put(key, tuple(results))
        return results

    # === Conversion ===

    def _info_to_candidate(
        self, info: YtDlpTrackInfo, fallback_url: str | None = None
    ) -> SearchCandidate | None:
        page_url = info.page_url or fallback_url
        if not page_url:
            logger.debug(LogTemplates.YTDLP_SKIPPED_ENTRY, info.title)
            return None

        return SearchCandidate(
            id=info.id or _generate_track_id(page_url),
            title=info.title,
            duration_seconds=info.duration or 0,
            thumbnail_url=info.thumbnail,
            source_url=page_url,
        )
