"""Dependency Injection Container

Wires providers, the audio sink, the broadcaster and the session registry.
Components are created on first access and cached for reuse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord import Client

    from guild_jukebox.application.interfaces.audio_sink import AudioSink
    from guild_jukebox.application.interfaces.providers import CatalogProvider, SearchProvider
    from guild_jukebox.application.services.broadcaster import EventBroadcaster
    from guild_jukebox.application.services.session_registry import SessionRegistry
    from guild_jukebox.application.services.track_resolver import TrackResolver
    from guild_jukebox.config.settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. The audio sink
    needs the Discord client, so :meth:`set_bot` must be called before the
    sink or the registry is requested.
    """

    settings: Settings
    _bot: Client | None = None

    # Infrastructure adapters
    _search_provider: SearchProvider | None = None
    _catalog_provider: CatalogProvider | None = None
    _catalog_checked: bool = False
    _audio_sink: AudioSink | None = None

    # Application services
    _track_resolver: TrackResolver | None = None
    _broadcaster: EventBroadcaster | None = None
    _session_registry: SessionRegistry | None = None

    def set_bot(self, bot: Client) -> None:
        """Set the Discord client instance."""
        self._bot = bot

    @property
    def bot(self) -> Client:
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Infrastructure Adapters ===

    @property
    def search_provider(self) -> SearchProvider:
        if self._search_provider is None:
            from guild_jukebox.infrastructure.audio.ytdlp_provider import YtDlpSearchProvider

            self._search_provider = YtDlpSearchProvider(self.settings.audio)
        return self._search_provider

    @property
    def catalog_provider(self) -> CatalogProvider | None:
        """Spotify catalog, or None when no credentials are configured."""
        if not self._catalog_checked:
            self._catalog_checked = True
            if self.settings.catalog.enabled:
                from guild_jukebox.infrastructure.catalog.spotify_catalog import (
                    SpotifyCatalogProvider,
                )

                self._catalog_provider = SpotifyCatalogProvider(self.settings.catalog)
            else:
                logger.warning(LogTemplates.CATALOG_DISABLED)
        return self._catalog_provider

    @property
    def audio_sink(self) -> AudioSink:
        if self._audio_sink is None:
            from guild_jukebox.infrastructure.discord.voice_sink import DiscordVoiceSink

            self._audio_sink = DiscordVoiceSink(self.bot, self.settings.audio)
        return self._audio_sink

    # === Application Services ===

    @property
    def track_resolver(self) -> TrackResolver:
        if self._track_resolver is None:
            from guild_jukebox.application.services.track_resolver import TrackResolver

            self._track_resolver = TrackResolver(
                search_provider=self.search_provider,
                catalog_provider=self.catalog_provider,
            )
        return self._track_resolver

    @property
    def broadcaster(self) -> EventBroadcaster:
        if self._broadcaster is None:
            from guild_jukebox.application.services.broadcaster import EventBroadcaster

            self._broadcaster = EventBroadcaster(
                stats_interval=self.settings.broadcast.stats_interval_seconds,
            )
        return self._broadcaster

    @property
    def session_registry(self) -> SessionRegistry:
        if self._session_registry is None:
            from guild_jukebox.application.services.session_registry import SessionRegistry

            audio = self.settings.audio
            self._session_registry = SessionRegistry(
                resolver=self.track_resolver,
                search_provider=self.search_provider,
                sink=self.audio_sink,
                broadcaster=self.broadcaster,
                default_volume=audio.default_volume,
                max_queue_size=audio.max_queue_size,
                connect_timeout=audio.connect_timeout_seconds,
            )
        return self._session_registry

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Tear down every session and release network resources."""
        if self._session_registry is not None:
            await self._session_registry.cleanup(reason="shutdown")

        if self._broadcaster is not None:
            await self._broadcaster.stop()
            self._broadcaster.bus.clear()

        if self._catalog_provider is not None:
            try:
                await self._catalog_provider.aclose()
            except Exception as exc:
                logger.warning("Failed closing catalog provider: %r", exc)


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
