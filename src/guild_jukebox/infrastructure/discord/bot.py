"""Discord client that hosts the session registry and its lifecycle hooks."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from guild_jukebox.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_jukebox.config.container import Container
    from guild_jukebox.config.settings import Settings

logger = logging.getLogger(__name__)


class JukeboxBot(commands.Bot):
    """Bot that owns the registry and tears sessions down when Discord says so.

    Sessions are removed when the bot leaves a guild, when it is forcibly
    disconnected from voice, and when the bot shuts down.
    """

    def __init__(
        self,
        container: Container,
        settings: Settings,
        **kwargs,
    ) -> None:
        intents = discord.Intents.default()
        intents.voice_states = True
        intents.guilds = True

        super().__init__(
            command_prefix=settings.discord.command_prefix,
            intents=intents,
            help_command=None,
            **kwargs,
        )

        self.container = container
        self.settings = settings
        self._shutdown_event = asyncio.Event()
        container.set_bot(self)

    async def setup_hook(self) -> None:
        logger.info(LogTemplates.BOT_SETUP)
        registry = self.container.session_registry
        self.container.broadcaster.start(registry, guild_count=lambda: len(self.guilds))
        logger.info(LogTemplates.BOT_SETUP_COMPLETE)

    async def on_ready(self) -> None:
        logger.info(
            LogTemplates.BOT_READY,
            self.user,  # type: ignore
            self.user.id,  # type: ignore
        )
        logger.info(LogTemplates.BOT_CONNECTED_GUILDS, len(self.guilds))

        activity = discord.Activity(type=discord.ActivityType.listening, name="the queue")
        await self.change_presence(activity=activity)

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info(LogTemplates.BOT_GUILD_REMOVED, guild.id)
        await self._cleanup_guild(guild.id, "guild_removed")

    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        if self.user is None or member.id != self.user.id:
            return
        if before.channel is not None and after.channel is None:
            logger.info(LogTemplates.BOT_FORCED_DISCONNECT, member.guild.id)
            await self._cleanup_guild(member.guild.id, "voice_disconnected")

    async def _cleanup_guild(self, guild_id: int, reason: str) -> None:
        try:
            await self.container.session_registry.cleanup(guild_id, reason=reason)
        except Exception as e:
            logger.warning(LogTemplates.BOT_SESSION_CLEANUP_FAILED, guild_id, e)

    async def close(self) -> None:
        logger.info(LogTemplates.BOT_SHUTTING_DOWN)

        try:
            await self.container.shutdown()
            logger.info(LogTemplates.BOT_CONTAINER_SHUTDOWN)
        except Exception as e:
            logger.warning(LogTemplates.BOT_CONTAINER_SHUTDOWN_ERROR, e)

        for vc in self.voice_clients:
            try:
                await vc.disconnect(force=True)
            except Exception as e:
                logger.debug(LogTemplates.VOICE_CLIENT_ERROR, e)

        await super().close()
        self._shutdown_event.set()
        logger.info(LogTemplates.BOT_SHUTDOWN_COMPLETE)

    def run_with_graceful_shutdown(self, token: str, *, shutdown_timeout: float = 30.0) -> None:
        async def runner():
            async with self:
                loop = asyncio.get_running_loop()

                async def _graceful_close() -> None:
                    try:
                        await asyncio.wait_for(self.close(), timeout=shutdown_timeout)
                    except TimeoutError:
                        logger.warning(LogTemplates.BOT_SHUTDOWN_TIMEOUT, shutdown_timeout)

                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, lambda: asyncio.create_task(_graceful_close()))
                await self.start(token)

        asyncio.run(runner())


def create_bot(container: Container, settings: Settings) -> JukeboxBot:
    return JukeboxBot(container=container, settings=settings)
