"""Discord voice sink implementing AudioSink for connection and playback."""

from __future__ import annotations

import asyncio
import logging

import discord

from guild_jukebox.application.interfaces.audio_sink import (
    AudioSink,
    SinkEvent,
    SinkEventHandler,
)
from guild_jukebox.application.interfaces.providers import StreamHandle
from guild_jukebox.config.settings import AudioSettings
from guild_jukebox.domain.music.value_objects import SinkEventKind
from guild_jukebox.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

FADE_IN_SECONDS: float = 0.5

# Matches yt-dlp's Android client user-agent to avoid YouTube 403 responses
ANDROID_USER_AGENT = "com.google.android.youtube/19.44.38 (Linux; U; Android 14) gzip"


def volume_to_gain(volume: int) -> float:
    """Map a 0-100 volume percentage to a PCMVolumeTransformer gain."""
    return max(0, min(100, volume)) / 100


class DiscordVoiceSink(AudioSink):
    """Plays FFmpeg-decoded streams on discord.py voice clients.

    discord.py invokes the ``after`` callback on its audio thread; the callback
    hands the completion back to the event loop with ``call_soon_threadsafe``
    before any handler sees it.
    """

    def __init__(self, bot: discord.Client, settings: AudioSettings | None = None) -> None:
        self._bot = bot
        self._settings = settings or AudioSettings()
        self._ffmpeg_options = self._settings.ffmpeg_options
        self._handler: SinkEventHandler | None = None
        self._generations: dict[int, int] = {}

    def set_event_handler(self, handler: SinkEventHandler) -> None:
        self._handler = handler

    def _emit(self, guild_id: int, kind: SinkEventKind, generation: int, error: str | None = None) -> None:
        if self._handler is None:
            return
        try:
            self._handler(
                SinkEvent(guild_id=guild_id, kind=kind, generation=generation, error=error)
            )
        except Exception:
            logger.exception("Sink event handler failed for guild %s", guild_id)

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    # === Connection ===

    async def connect(self, guild_id: int, channel_id: int, *, timeout: float) -> bool:
        guild = self._bot.get_guild(guild_id)
        channel = guild.get_channel(channel_id) if guild else None
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            logger.warning(LogTemplates.VOICE_CHANNEL_NOT_FOUND, channel_id)
            return False

        vc = self._get_voice_client(guild_id)
        if vc is not None and vc.is_connected() and vc.channel and vc.channel.id == channel_id:
            return True

        try:
            async with asyncio.timeout(timeout):
                if vc is not None and vc.is_connected():
                    await vc.move_to(channel)
                else:
                    await channel.connect(self_deaf=True)
            logger.info(LogTemplates.VOICE_CONNECTED, channel.name, guild.name)
            return True
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id)
        except discord.Forbidden:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
        except Exception:
            logger.exception("Failed to connect to voice")

        # A half-open connection would block the next join attempt.
        stale = self._get_voice_client(guild_id)
        if stale is not None:
            try:
                await stale.disconnect(force=True)
            except Exception as e:
                logger.debug(LogTemplates.VOICE_CLIENT_ERROR, e)
        return False

    async def disconnect(self, guild_id: int) -> bool:
        self._generations.pop(guild_id, None)
        vc = self._get_voice_client(guild_id)
        if not vc:
            return True

        try:
            await vc.disconnect(force=True)
            logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
            return True
        except Exception:
            logger.exception("Failed to disconnect from voice")
            return False

    def is_connected(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        return vc is not None and vc.is_connected()

    # === Playback ===

    async def play(
        self,
        guild_id: int,
        stream: StreamHandle,
        *,
        volume: int,
        generation: int,
    ) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc:
            logger.warning(LogTemplates.VOICE_NOT_CONNECTED, guild_id)
            return False

        if vc.is_playing() or vc.is_paused():
            vc.stop()

        loop = asyncio.get_running_loop()

        def after_callback(error: Exception | None = None) -> None:
            logger.debug(LogTemplates.VOICE_STREAM_ENDED, guild_id, generation, error)
            kind = SinkEventKind.ERRORED if error else SinkEventKind.COMPLETED
            loop.call_soon_threadsafe(
                self._emit, guild_id, kind, generation, str(error) if error else None
            )

        try:
            # User-Agent must match yt-dlp's Android client to prevent YouTube 403
            base_before_opts = self._ffmpeg_options.get("before_options", "")
            before_opts = f'{base_before_opts} -headers "User-Agent: {ANDROID_USER_AGENT}"'
            base_opts = self._ffmpeg_options.get("options", "")
            fade_opts = f'{base_opts} -af "afade=t=in:ss=0:d={FADE_IN_SECONDS}"'

            source = discord.FFmpegPCMAudio(
                stream.url,
                before_options=before_opts,
                options=fade_opts,
            )
            volume_source = discord.PCMVolumeTransformer(source, volume=volume_to_gain(volume))

            self._generations[guild_id] = generation
            vc.play(volume_source, after=after_callback)
        except Exception as e:
            logger.error(LogTemplates.VOICE_PLAY_FAILED, guild_id, e)
            return False

        self._emit(guild_id, SinkEventKind.STARTED, generation)
        return True

    async def stop(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc:
            return True

        if vc.is_playing() or vc.is_paused():
            vc.stop()
        return True

    async def pause(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.is_playing():
            return False

        vc.pause()
        self._emit(guild_id, SinkEventKind.PAUSED, self._generations.get(guild_id, 0))
        return True

    async def resume(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.is_paused():
            return False

        vc.resume()
        self._emit(guild_id, SinkEventKind.RESUMED, self._generations.get(guild_id, 0))
        return True

    def set_volume(self, guild_id: int, volume: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.source:
            return False

        if isinstance(vc.source, discord.PCMVolumeTransformer):
            vc.source.volume = volume_to_gain(volume)
            return True

        return False
