"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Audio search and streams (yt-dlp)
- Catalog metadata (Spotify Web API over httpx)
- Discord (bot, voice sink)
"""
