"""Twitch live notifications: /twitch-notify commands and the polling monitor"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.config import BotConfig
from devbadge.bot.core.commands import CommandContext, CommandReply, run_interaction
from devbadge.bot.core.twitch_api import StreamInfo, TwitchAPIClient, TwitchAPIError
from devbadge.bot.core.twitch_monitor import TwitchMonitor

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.twitch")

TWITCH_PURPLE = 0x9146FF
DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"
NOT_CONFIGURED = (
    "Twitch notifications are not configured. Please add `TWITCH_CLIENT_ID` and "
    "`TWITCH_CLIENT_SECRET` (or `TWITCH_ACCESS_TOKEN`) to your .env file."
)


def build_live_embed(stream: StreamInfo) -> discord.Embed:
    embed = discord.Embed(
        title=f"🔴 {stream.user_name} is now LIVE on Twitch!",
        description=f"**{stream.title}**" if stream.title else None,
        url=stream.url,
        color=TWITCH_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="🎮 Game", value=stream.game_name or "Unknown", inline=True)
    embed.add_field(name="👥 Viewers", value=str(stream.viewer_count), inline=True)
    if stream.started_at:
        embed.add_field(name="⏰ Started", value=f"<t:{int(stream.started_at.timestamp())}:R>", inline=True)
    if stream.thumbnail_url:
        embed.set_image(url=stream.thumbnail(1280, 720))
    embed.set_footer(text="Twitch")
    return embed


class Twitch(commands.Cog):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot
        self.api: TwitchAPIClient | None = None

    async def cog_load(self) -> None:
        if BotConfig.TWITCH_CLIENT_ID and (BotConfig.TWITCH_CLIENT_SECRET or BotConfig.TWITCH_ACCESS_TOKEN):
            self.api = TwitchAPIClient(
                BotConfig.TWITCH_CLIENT_ID,
                BotConfig.TWITCH_CLIENT_SECRET,
                BotConfig.TWITCH_ACCESS_TOKEN,
            )
            monitor = TwitchMonitor(
                self.api,
                self.bot.twitch_configs,
                self.send_live_notification,
                interval=BotConfig.TWITCH_CHECK_INTERVAL,
            )
            monitor.reload()
            self.bot.twitch_monitor = monitor
        else:
            logger.warning("Twitch credentials not set; live notifications are disabled")

        for sub in ("add", "remove", "list", "channel"):
            self.bot.registry.register(
                f"twitch-notify {sub}",
                getattr(self, f"handle_{sub}"),
                permission="manage_guild",
                guild_only=True,
                defer=sub == "add",
            )

    async def cog_unload(self) -> None:
        for sub in ("add", "remove", "list", "channel"):
            self.bot.registry.unregister(f"twitch-notify {sub}")
        if self.bot.twitch_monitor:
            await self.bot.twitch_monitor.stop()
            self.bot.twitch_monitor = None

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.bot.twitch_monitor:
            self.bot.twitch_monitor.start()

    async def send_live_notification(self, channel_id: str, stream: StreamInfo) -> bool:
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(channel_id))
            except discord.HTTPException as e:
                logger.error(f"Cannot fetch Twitch notification channel {channel_id}: {e}")
                return False
        if not isinstance(channel, discord.abc.Messageable):
            logger.error(f"Twitch notification channel {channel_id} is not text based")
            return False

        try:
            message = await self.bot.rate_limiter.safe_send_message(
                channel,
                content=f"@everyone 🔔 **{stream.user_name}** is now streaming!",
                embed=build_live_embed(stream),
                allowed_mentions=discord.AllowedMentions(everyone=True),
            )
        except discord.HTTPException as e:
            logger.error(f"Error sending Twitch notification for {stream.user_login}: {e}")
            return False
        return message is not None

    # ==================== Handlers ====================

    def _refresh(self, guild_id: str, config) -> None:
        if self.bot.twitch_monitor:
            self.bot.twitch_monitor.update_config(guild_id, config)

    async def handle_add(self, ctx: CommandContext) -> CommandReply:
        if self.api is None:
            return CommandReply.error(NOT_CONFIGURED)

        streamer = str(ctx.option("streamer", "")).strip().lower()
        channel_id = ctx.option("channel") or ctx.channel_id
        try:
            user = await self.api.get_user(streamer)
        except TwitchAPIError as e:
            logger.error(f"Twitch user lookup failed for {streamer}: {e}")
            return CommandReply.error("Could not reach Twitch right now. Please try again later.")
        if user is None:
            return CommandReply.error(f"Twitch user **{streamer}** not found. Please check the username.")

        display_name = user.get("display_name") or streamer
        config, added = self.bot.twitch_configs.add_streamer(ctx.guild_id, streamer, channel_id)  # type: ignore[arg-type]
        self._refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        if not added:
            return CommandReply(content=f"⚠️ **{display_name}** is already being monitored in this server.")

        logger.info(f"Added Twitch streamer {streamer} to {ctx.guild_name}")
        return CommandReply.success(
            f"Now monitoring **{display_name}** ({user.get('login', streamer)})\n"
            f"📢 Notifications will be sent to <#{config.channel_id}>\n"
            f"🔍 Checking status every {int(BotConfig.TWITCH_CHECK_INTERVAL)} seconds"
        )

    async def handle_remove(self, ctx: CommandContext) -> CommandReply:
        streamer = str(ctx.option("streamer", "")).strip().lower()
        config, removed = self.bot.twitch_configs.remove_streamer(ctx.guild_id, streamer)  # type: ignore[arg-type]
        if not removed:
            return CommandReply.error(f"**{streamer}** is not being monitored in this server.")
        self._refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        logger.info(f"Removed Twitch streamer {streamer} from {ctx.guild_name}")
        return CommandReply.success(f"Stopped monitoring **{streamer}**")

    async def handle_list(self, ctx: CommandContext) -> CommandReply:
        config = self.bot.twitch_configs.get(ctx.guild_id)  # type: ignore[arg-type]
        if not config.streamers:
            return CommandReply(content="📭 No streamers are being monitored in this server.")
        channel = f"<#{config.channel_id}>" if config.channel_id else "❌ Not set"
        return CommandReply(
            content=(
                f"📺 **Monitored Streamers for {ctx.guild_name}**\n{DIVIDER}\n"
                f"🎮 {', '.join(config.streamers)}\n"
                f"📢 Notification Channel: {channel}\n"
                f"Total: {len(config.streamers)}"
            )
        )

    async def handle_channel(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        config = self.bot.twitch_configs.update(ctx.guild_id, channel_id=channel_id)  # type: ignore[arg-type]
        self._refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        return CommandReply.success(f"Twitch notifications will be sent to <#{config.channel_id}>")

    # ==================== Slash commands ====================

    twitch_notify = app_commands.Group(
        name="twitch-notify",
        description="Manage Twitch live notifications",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    @twitch_notify.command(name="add", description="Start monitoring a Twitch streamer")
    @app_commands.describe(streamer="Twitch username", channel="Channel for notifications (defaults to this one)")
    async def add(
        self, interaction: discord.Interaction, streamer: str, channel: discord.TextChannel | None = None
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @twitch_notify.command(name="remove", description="Stop monitoring a Twitch streamer")
    @app_commands.describe(streamer="Twitch username")
    async def remove(self, interaction: discord.Interaction, streamer: str) -> None:
        await run_interaction(self.bot.registry, interaction)

    @twitch_notify.command(name="list", description="List monitored streamers")
    async def list_streamers(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @twitch_notify.command(name="channel", description="Set the notification channel")
    @app_commands.describe(channel="Channel for live notifications")
    async def channel(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await run_interaction(self.bot.registry, interaction)


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(Twitch(bot))
