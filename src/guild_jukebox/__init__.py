"""Per-guild playback queue manager for Discord voice channels."""

__version__ = "0.1.0"
