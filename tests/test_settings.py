"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values for every settings section
- Field aliases and range validation
- Loading settings from environment variables
- Settings caching and clearing
"""

import pytest
from pydantic import SecretStr, ValidationError

from guild_jukebox.config.settings import (
    AudioSettings,
    BroadcastSettings,
    CatalogSettings,
    DiscordSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test from an empty directory with no settings in the environment."""
    monkeypatch.chdir(tmp_path)
    for name in ("LOG_LEVEL", "ENVIRONMENT", "DEBUG", "DISCORD__TOKEN", "CATALOG__CLIENT_ID"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# DiscordSettings Tests
# =============================================================================


class TestDiscordSettings:
    """Unit tests for DiscordSettings configuration."""

    def test_defaults(self):
        discord = DiscordSettings()

        assert discord.token.get_secret_value() == ""
        assert discord.command_prefix == "!"

    def test_token_alias(self):
        """Should accept 'bot_token' alias for token field."""
        discord = DiscordSettings(bot_token=SecretStr("abc"))
        assert discord.token.get_secret_value() == "abc"

    def test_prefix_length_validated(self):
        with pytest.raises(ValidationError):
            DiscordSettings(command_prefix="toolong")

    def test_token_is_hidden_in_repr(self):
        discord = DiscordSettings(token=SecretStr("super-secret"))
        assert "super-secret" not in repr(discord)

    def test_immutability(self):
        """Should be immutable (frozen)."""
        discord = DiscordSettings()
        with pytest.raises(ValidationError):
            discord.command_prefix = "?"


# =============================================================================
# AudioSettings Tests
# =============================================================================


class TestAudioSettings:
    """Unit tests for AudioSettings configuration."""

    def test_defaults(self):
        audio = AudioSettings()

        assert audio.default_volume == 100
        assert audio.max_queue_size == 100
        assert audio.connect_timeout_seconds == 30.0
        assert audio.search_cache_ttl_seconds == 3600
        assert audio.ytdlp_format == "bestaudio/best"
        assert "-vn" in audio.ffmpeg_options["options"]

    @pytest.mark.parametrize("volume", [-1, 101])
    def test_default_volume_range(self, volume):
        with pytest.raises(ValidationError):
            AudioSettings(default_volume=volume)

    def test_max_queue_size_minimum(self):
        with pytest.raises(ValidationError, match="greater than or equal to 1"):
            AudioSettings(max_queue_size=0)

    def test_connect_timeout_alias(self):
        assert AudioSettings(connect_timeout=5.0).connect_timeout_seconds == 5.0

    def test_cache_ttl_alias(self):
        assert AudioSettings(cache_ttl=0).search_cache_ttl_seconds == 0

    def test_strict_types(self):
        """Should reject strings for numeric fields when built directly."""
        with pytest.raises(ValidationError):
            AudioSettings(default_volume="50")


# =============================================================================
# CatalogSettings / BroadcastSettings Tests
# =============================================================================


class TestCatalogSettings:
    """Unit tests for CatalogSettings configuration."""

    def test_disabled_by_default(self):
        catalog = CatalogSettings()

        assert catalog.enabled is False
        assert catalog.api_base == "https://api.spotify.com/v1"
        assert catalog.token_url == "https://accounts.spotify.com/api/token"

    def test_enabled_with_credentials(self):
        catalog = CatalogSettings(
            spotify_client_id="id", spotify_client_secret=SecretStr("secret")
        )
        assert catalog.enabled is True

    def test_secret_alone_is_not_enough(self):
        assert CatalogSettings(client_secret=SecretStr("secret")).enabled is False


class TestBroadcastSettings:
    def test_default_interval(self):
        assert BroadcastSettings().stats_interval_seconds == 5.0

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            BroadcastSettings(stats_interval_seconds=0.0)


# =============================================================================
# Settings Tests
# =============================================================================


class TestSettings:
    """Unit tests for the top-level Settings object."""

    def test_defaults(self):
        settings = Settings()

        assert settings.environment == "development"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert isinstance(settings.audio, AudioSettings)
        assert isinstance(settings.catalog, CatalogSettings)
        assert isinstance(settings.broadcast, BroadcastSettings)

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(log_level="LOUD")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="staging")

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert Settings().log_level == "WARNING"

    def test_nested_token_from_env(self, monkeypatch):
        monkeypatch.setenv("DISCORD__TOKEN", "from-env")
        assert Settings().discord.token.get_secret_value() == "from-env"

    def test_catalog_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("CATALOG__CLIENT_ID", "env-id")
        monkeypatch.setenv("CATALOG__CLIENT_SECRET", "env-secret")

        settings = Settings()

        assert settings.catalog.client_id == "env-id"
        assert settings.catalog.enabled is True


class TestSettingsCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.log_level == "ERROR"
