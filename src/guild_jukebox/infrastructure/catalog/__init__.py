"""Spotify catalog provider."""

from guild_jukebox.infrastructure.catalog.spotify_catalog import SpotifyCatalogProvider

__all__ = ["SpotifyCatalogProvider"]
