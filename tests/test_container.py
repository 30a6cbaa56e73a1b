"""
Unit Tests for Dependency Injection Container

Tests for:
- Container creation and bot management
- Lazy creation and caching of providers and services
- Catalog provider enabled only with credentials
- Shutdown ordering
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from guild_jukebox.application.services.broadcaster import EventBroadcaster
from guild_jukebox.application.services.session_registry import SessionRegistry
from guild_jukebox.application.services.track_resolver import TrackResolver
from guild_jukebox.config.container import Container, create_container
from guild_jukebox.config.settings import AudioSettings, CatalogSettings, Settings
from guild_jukebox.infrastructure.audio.ytdlp_provider import YtDlpSearchProvider
from guild_jukebox.infrastructure.catalog.spotify_catalog import SpotifyCatalogProvider
from guild_jukebox.infrastructure.discord.voice_sink import DiscordVoiceSink


@pytest.fixture
def settings():
    return Settings(audio=AudioSettings(default_volume=60, max_queue_size=20))


@pytest.fixture
def container(settings):
    return create_container(settings)


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.user.id = 123456789
    return bot


# =============================================================================
# Initialization Tests
# =============================================================================


class TestContainerInitialization:
    """Unit tests for Container initialization."""

    def test_create_container_factory(self, settings):
        container = create_container(settings)
        assert isinstance(container, Container)
        assert container.settings is settings

    def test_bot_not_set_raises(self, container):
        with pytest.raises(RuntimeError, match="Bot not initialized"):
            _ = container.bot

    def test_set_bot(self, container, mock_bot):
        container.set_bot(mock_bot)
        assert container.bot is mock_bot


# =============================================================================
# Lazy Property Tests
# =============================================================================


class TestLazyProperties:
    """Properties create instances on first access and cache them."""

    def test_search_provider(self, container):
        provider = container.search_provider
        assert isinstance(provider, YtDlpSearchProvider)
        assert container.search_provider is provider

    def test_catalog_disabled_without_credentials(self, container):
        assert container.catalog_provider is None
        assert container.catalog_provider is None

    def test_catalog_enabled_with_credentials(self):
        settings = Settings(
            catalog=CatalogSettings(client_id="id", client_secret=SecretStr("secret"))
        )
        container = Container(settings=settings)

        catalog = container.catalog_provider

        assert isinstance(catalog, SpotifyCatalogProvider)
        assert container.catalog_provider is catalog

    def test_track_resolver(self, container):
        resolver = container.track_resolver
        assert isinstance(resolver, TrackResolver)
        assert container.track_resolver is resolver

    def test_broadcaster(self, container):
        broadcaster = container.broadcaster
        assert isinstance(broadcaster, EventBroadcaster)
        assert container.broadcaster is broadcaster

    def test_audio_sink_requires_bot(self, container):
        with pytest.raises(RuntimeError):
            _ = container.audio_sink

    def test_audio_sink(self, container, mock_bot):
        container.set_bot(mock_bot)
        assert isinstance(container.audio_sink, DiscordVoiceSink)

    @pytest.mark.asyncio
    async def test_session_registry_uses_audio_settings(self, container, mock_bot):
        container.set_bot(mock_bot)

        registry = container.session_registry

        assert isinstance(registry, SessionRegistry)
        assert container.session_registry is registry
        assert registry._default_volume == 60
        assert registry._max_queue_size == 20


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestShutdown:
    """Tests for Container.shutdown."""

    @pytest.mark.asyncio
    async def test_shutdown_with_nothing_created(self, container):
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_cleans_up_everything(self, container):
        registry = MagicMock()
        registry.cleanup = AsyncMock(return_value=0)
        broadcaster = MagicMock()
        broadcaster.stop = AsyncMock()
        catalog = MagicMock()
        catalog.aclose = AsyncMock()
        container._session_registry = registry
        container._broadcaster = broadcaster
        container._catalog_provider = catalog

        await container.shutdown()

        registry.cleanup.assert_awaited_once_with(reason="shutdown")
        broadcaster.stop.assert_awaited_once()
        broadcaster.bus.clear.assert_called_once()
        catalog.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_catalog_close_failure_is_swallowed(self, container):
        catalog = MagicMock()
        catalog.aclose = AsyncMock(side_effect=RuntimeError("already closed"))
        container._catalog_provider = catalog

        await container.shutdown()
