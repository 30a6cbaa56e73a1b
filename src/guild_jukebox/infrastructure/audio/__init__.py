"""yt-dlp backed search provider."""

from guild_jukebox.infrastructure.audio.ytdlp_provider import YtDlpSearchProvider

__all__ = ["YtDlpSearchProvider"]
