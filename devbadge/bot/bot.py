"""
DevBadge Discord Bot
discord.py 2.x with slash commands
"""

import asyncio
import logging
import sys
import time
from typing import Any

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.config import BotConfig
from devbadge.bot.core.commands import CommandRegistry
from devbadge.bot.core.control_server import ControlServer
from devbadge.bot.core.rate_limiter import RateLimitMonitor
from devbadge.bot.core.scheduler import LongIntervalScheduler
from devbadge.bot.core.tracking import TrackingService
from devbadge.bot.core.twitch_monitor import TwitchMonitor
from devbadge.shared.logging import setup_logging
from devbadge.shared.repositories import (
    AutoExecutionRepository,
    CommandConfigRepository,
    TrackingConfigRepository,
    TranslationConfigRepository,
    TranslationStatsRepository,
    TwitchConfigRepository,
)
from devbadge.shared.storage import JsonFileStore

logger = logging.getLogger("discord_bot")

INITIAL_EXTENSIONS = [
    "devbadge.bot.cogs.badge",
    "devbadge.bot.cogs.tracking",
    "devbadge.bot.cogs.twitch",
    "devbadge.bot.cogs.translation",
    "devbadge.bot.cogs.moderation",
    "devbadge.bot.cogs.info",
]


class DevBadgeBot(commands.Bot):
    """Discord client holding the shared repositories, registries and monitors"""

    def __init__(self, store: JsonFileStore | None = None):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        # Prefix commands go through prefix_registry; ext.commands only answers mentions
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.store = store or JsonFileStore(BotConfig.DATA_DIR)
        self.translation_configs = TranslationConfigRepository(self.store)
        self.translation_stats = TranslationStatsRepository(self.store)
        self.twitch_configs = TwitchConfigRepository(self.store)
        self.tracking_configs = TrackingConfigRepository(self.store)
        self.command_configs = CommandConfigRepository(self.store)
        self.auto_execution = AutoExecutionRepository(self.store)

        self.registry = CommandRegistry(is_disabled=self.command_configs.is_disabled)
        self.prefix_registry = CommandRegistry(is_disabled=self.command_configs.is_disabled)

        self.start_time = time.time()
        self.scheduler: LongIntervalScheduler | None = None
        self.twitch_monitor: TwitchMonitor | None = None
        self.tracking = TrackingService(self.tracking_configs)
        self.rate_limiter = RateLimitMonitor(self)
        self.control_server = ControlServer(
            self,
            secret=BotConfig.CONTROL_SECRET,
            host=BotConfig.CONTROL_HOST,
            port=BotConfig.CONTROL_PORT,
        )

        self.tree.on_error = self.on_app_command_error

    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    async def setup_hook(self) -> None:
        asyncio.get_running_loop().set_exception_handler(_loop_exception_handler)
        await self.rate_limiter.start_monitoring()

        loaded = []
        failed = []
        for extension in INITIAL_EXTENSIONS:
            try:
                await self.load_extension(extension)
                loaded.append(extension.split(".")[-1])
            except Exception as e:
                logger.exception(f"Failed to load {extension}: {e}")
                failed.append(f"{extension.split('.')[-1]} ({e})")

        if loaded:
            logger.info(f"[green]Loaded cogs:[/green] {', '.join(loaded)}")
        if failed:
            logger.error(f"[red]Failed to load:[/red] {', '.join(failed)}")

        self.tracking.reload()
        await self.control_server.start()
        await self.sync_commands()
        logger.info("[yellow]Connecting to Discord...[/yellow]")

    async def sync_commands(self) -> None:
        logger.info(f"[yellow]Syncing {len(self.registry)} slash command handler(s)...[/yellow]")
        try:
            if BotConfig.GUILD_ID:
                guild = discord.Object(id=int(BotConfig.GUILD_ID))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(f"[magenta]Synced {len(synced)} command(s) to guild {BotConfig.GUILD_ID}[/magenta]")
                if BotConfig.REGISTER_GLOBAL_WHEN_GUILD:
                    synced = await self.tree.sync()
                    logger.info(f"[magenta]Synced {len(synced)} command(s) globally[/magenta]")
            else:
                # Global sync can take up to an hour to propagate
                synced = await self.tree.sync()
                logger.info(f"[magenta]Synced {len(synced)} command(s) globally[/magenta]")
        except (discord.HTTPException, ValueError) as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_ready(self) -> None:
        if self.user is None:
            return
        logger.info(f"[bold green]Bot ready:[/bold green] {self.user} [dim](ID: {self.user.id})[/dim]")
        logger.info(f"[cyan]Connected:[/cyan] {len(self.guilds)} server(s) | discord.py {discord.__version__}")
        if self.scheduler:
            nxt = self.scheduler.next_execution()
            logger.info(f"[cyan]Next auto-execution:[/cyan] {nxt.isoformat() if nxt else 'at the first check'}")

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        logger.exception(f"Unhandled error in {event_method}")

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error(f"Command error: {error}", exc_info=error)

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        name = interaction.command.qualified_name if interaction.command else "unknown"
        logger.error(f"App command error in /{name}: {error}", exc_info=error)
        try:
            message = "❌ An error occurred while executing this command."
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except discord.HTTPException as e:
            logger.debug(f"Could not report error for /{name}: {e}")

    async def close(self) -> None:
        if self.scheduler:
            await self.scheduler.stop()
        if self.twitch_monitor:
            await self.twitch_monitor.stop()
        await self.rate_limiter.stop_monitoring()
        await self.control_server.stop()
        await super().close()


def _loop_exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    error = context.get("exception")
    logger.error(f"Unhandled asyncio error: {context.get('message')}", exc_info=error)


async def main() -> int:
    token = BotConfig.TOKEN
    if not token:
        logger.error("[bold red]DISCORD_TOKEN is not set[/bold red]")
        logger.error("Set it in your .env file: DISCORD_TOKEN=your_token_here")
        return 1

    async with DevBadgeBot() as bot:
        try:
            await bot.start(token)
        except discord.LoginFailure as e:
            logger.error(f"[bold red]Failed to log in:[/bold red] {e}")
            await asyncio.sleep(2)
            return 1
        except (KeyboardInterrupt, asyncio.CancelledError):
            if not bot.is_closed():
                await bot.close()
    return 0


def run() -> None:
    setup_logging()
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("[yellow]Bot stopped manually[/yellow]")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
