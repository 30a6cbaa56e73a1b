"""Centralized message constants for error messages and log templates."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Queue Validation Errors
    QUEUE_FULL = "Queue is full ({max_size} tracks)"
    INDEX_OUT_OF_RANGE = "No pending track at index {index} (queue has {length})"
    VOLUME_NOT_A_NUMBER = "Volume must be a finite number, got {volume!r}"

    # Query Classification Errors
    EMPTY_QUERY = "Query cannot be empty"
    UNSUPPORTED_CATALOG_KIND = "Only Spotify track links are supported, got '{kind}'"
    INVALID_CATALOG_REFERENCE = "Not a valid Spotify track reference: {query}"

    # Resolution Errors
    NO_MEDIA_FOUND = "No playable media found at {query}"
    NO_RESULTS = "No results for '{query}'"
    NO_PLAYABLE_EQUIVALENT = "Couldn't find a playable version of '{title}'"
    CATALOG_NOT_CONFIGURED = "Spotify catalog is not configured"
    NO_STRATEGY = "No resolution strategy for {kind} queries"

    # Search Provider Errors
    SEARCH_PROVIDER_FAILED = "Search provider failed: {error}"
    MEDIA_UNAVAILABLE = "Media is unavailable: {url}"
    NO_STREAM_URL = "No stream URL found for {url}"

    # Catalog Provider Errors
    CATALOG_TRACK_NOT_FOUND = "Spotify track {reference_id} not found"
    CATALOG_REQUEST_REJECTED = "Spotify rejected the reference {reference_id}"
    CATALOG_UNAVAILABLE = "Spotify is unavailable: {error}"
    CATALOG_AUTH_FAILED = "Spotify authentication failed (HTTP {status})"

    # Session Errors
    CHANNEL_CONFLICT = (
        "Already playing in channel {channel_id} in guild {guild_id}; "
        "disconnect before joining {requested}"
    )
    NO_ACTIVE_SESSION = "No active session in guild {guild_id}"
    SESSION_CLOSED = "Session for guild {guild_id} is closed"
    CONNECT_FAILED = "Could not connect to voice channel {channel_id}"
    CHANNEL_NOT_FOUND = "Voice channel {channel_id} not found"

    # Authentication/Configuration Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD_TOKEN environment variable is required"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Resolution
    RESOLVE_CLASSIFIED = "Classified query %r as %s"
    RESOLVE_STRATEGY_FALLBACK = "Strategy '%s' unavailable, falling back: %s"
    RESOLVE_FAILED = "Failed to resolve %r (%s): %s"
    RESOLVE_SUCCEEDED = "Resolved %r to '%s' via %s"

    # Cache Operations
    CACHE_HIT = "Cache hit for '%s'"
    CACHE_EXPIRED_PRUNED = "Pruned %d expired cache entries"

    # yt-dlp
    YTDLP_FAILED_SEARCH = "Failed to search for %r: %s"
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info from %s: %s"
    YTDLP_NO_STREAM_URL = "No stream URL found for %s"
    YTDLP_SKIPPED_ENTRY = "Skipped unusable search entry: %s"

    # Catalog
    CATALOG_TOKEN_REFRESHED = "Refreshed Spotify access token (expires in %ss)"
    CATALOG_TRACK_FETCHED = "Fetched Spotify track %s: '%s'"
    CATALOG_REQUEST_FAILED = "Spotify request for %s failed: %s"
    CATALOG_DISABLED = "Spotify credentials not set; catalog lookups disabled"

    # Voice/Audio Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_CHANNEL_NOT_FOUND = "Voice channel %s not found"
    VOICE_NOT_CONNECTED = "Not connected to voice in guild %s"
    VOICE_PLAY_FAILED = "Voice sink failed to play in guild %s: %s"
    VOICE_STREAM_ENDED = "Stream ended in guild %s (generation=%s, error=%s)"

    # Playback Operations
    PLAYBACK_STOPPED = "Stopped playback and cleared %s tracks in guild %s"
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_ERROR = "Playback error for '%s' in guild %s: %s"
    PLAYBACK_STREAM_FAILED = "Failed to open stream for '%s' in guild %s: %s"
    PLAYBACK_TRACK_UNPLAYABLE = "Skipping unplayable track '%s' in guild %s"
    PLAYBACK_SINK_CALL_FAILED = "Audio sink %s failed in guild %s: %s"
    SINK_EVENT_STALE = "Ignoring stale %s event (generation %s, current %s) in guild %s"
    SINK_EVENT_ACK = "Sink acknowledged %s in guild %s"
    CONTROLLER_COMMAND = "Running %s in guild %s"
    CONTROLLER_CLOSED = "Playback controller closed for guild %s"

    # Track Operations
    TRACK_LOADING = "Loading '%s' (generation %s) in guild %s"
    TRACK_STARTED = "Started playing: %s in guild %s"
    TRACK_SKIPPED = "Skipped track: %s in guild %s"
    TRACK_FINISHED = "Track finished: %s in guild %s"

    # Queue Operations
    QUEUE_ENQUEUED = "Enqueued track '%s' at position %s in guild %s"
    QUEUE_REMOVED = "Removed track '%s' at index %s in guild %s"
    QUEUE_EXHAUSTED = "Queue exhausted in guild %s"
    VOLUME_CHANGED = "Volume set to %s in guild %s"
    SHUFFLE_TOGGLED = "Shuffle set to %s in guild %s"
    LOOP_MODE_CHANGED = "Loop mode changed to %s in guild %s"

    # Session Operations
    SESSION_OPENED = "Opened session in guild %s (channel %s)"
    SESSION_CLOSED = "Closed session in guild %s (%s)"
    SESSION_CLEANED_UP = "Cleaned up %s sessions"
    SESSION_EVENT_UNROUTED = "Dropping %s sink event for guild %s without a session"

    # Stats Broadcast
    STATS_STARTED = "Stats broadcast started (every %ss)"
    STATS_STOPPED = "Stats broadcast stopped"
    STATS_ALREADY_RUNNING = "Stats broadcast is already running"
    BROADCAST_FLUSH_TIMEOUT = "Dropping %d undelivered events on shutdown"

    # Application Lifecycle
    LOGGING_CONFIG_FALLBACK = "Could not load logging config %s (%s), using basic config"
    BOT_STARTING = "Starting guild jukebox in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown timed out after %ss"
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"
    BOT_GUILD_REMOVED = "Removed from guild %s, tearing down its session"
    BOT_FORCED_DISCONNECT = "Bot was disconnected from voice in guild %s"
    BOT_SESSION_CLEANUP_FAILED = "Failed to clean up session for guild %s: %s"
