"""Active Developer badge upkeep, status commands and presence rotation"""

from __future__ import annotations

import logging
import math
import platform
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands, tasks

from devbadge.bot.config import BotConfig
from devbadge.bot.core.commands import (
    CommandContext,
    CommandReply,
    context_from_message,
    run_interaction,
)
from devbadge.bot.core.formatting import days_until, format_remaining, format_uptime
from devbadge.bot.core.presence import PresenceRotator
from devbadge.bot.core.scheduler import LongIntervalScheduler

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.badge")

UPKEEP_MESSAGE = "✅ Auto-maintenance Active Developer status - Ping! Bot is working properly."
DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"


def _timestamp(value, style: str = "R") -> str:
    return f"<t:{int(value.timestamp())}:{style}>" if value else "Never"


class Badge(commands.Cog):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot
        self.presence = PresenceRotator(
            server_count=lambda: len(self.bot.guilds),
            uptime=lambda: format_uptime(self.bot.uptime_seconds()),
        )

    # ==================== Lifecycle ====================

    async def cog_load(self) -> None:
        if BotConfig.ENABLE_AUTO_EXECUTION:
            self.bot.scheduler = LongIntervalScheduler(
                self.send_upkeep_ping,
                self.bot.auto_execution,
                interval_days=BotConfig.AUTO_EXECUTE_INTERVAL_DAYS,
                first_delay=BotConfig.AUTO_EXECUTE_FIRST_DELAY,
                poll_interval=BotConfig.AUTO_EXECUTE_CHECK_INTERVAL,
            )
        else:
            logger.info("Auto-execution is disabled (ENABLE_AUTO_EXECUTION=false)")

        registry = self.bot.registry
        registry.register("ping", self.handle_ping)
        registry.register("uptime", self.handle_uptime)
        registry.register("status", self.handle_status)
        registry.register("auto-execution enable", self.handle_auto_enable, permission="manage_guild")
        registry.register("auto-execution disable", self.handle_auto_disable, permission="manage_guild")
        registry.register("auto-execution status", self.handle_auto_status, permission="manage_guild")
        registry.register("help", self.handle_help)
        registry.register("stats", self.handle_stats)
        registry.register("serverinfo", self.handle_serverinfo, guild_only=True)

        prefix = self.bot.prefix_registry
        prefix.register("help", self.handle_prefix_help)
        prefix.register("ping", self.handle_prefix_ping)
        prefix.register("uptime", self.handle_prefix_uptime)
        prefix.register("prefix", self.handle_prefix_prefix)

    async def cog_unload(self) -> None:
        self.rotate_presence.cancel()
        for name in (
            "ping", "uptime", "status", "help", "stats", "serverinfo",
            "auto-execution enable", "auto-execution disable", "auto-execution status",
        ):
            self.bot.registry.unregister(name)
        for name in ("help", "ping", "uptime", "prefix"):
            self.bot.prefix_registry.unregister(name)
        if self.bot.scheduler:
            await self.bot.scheduler.stop()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.bot.scheduler:
            self.bot.scheduler.arm()

        activity = BotConfig.get_activity()
        if activity is not None:
            await self.bot.change_presence(status=BotConfig.get_status(), activity=activity)
        elif not self.rotate_presence.is_running():
            self.rotate_presence.change_interval(seconds=BotConfig.PRESENCE_ROTATION_INTERVAL)
            self.rotate_presence.start()

    @tasks.loop(seconds=30)
    async def rotate_presence(self) -> None:
        await self.presence.rotate(self.bot, BotConfig.get_status())

    # ==================== Upkeep ====================

    async def send_upkeep_ping(self) -> bool:
        """Post the upkeep message in the first writable text channel of GUILD_ID"""
        if not BotConfig.GUILD_ID:
            logger.warning("GUILD_ID is not set; cannot run auto-execution")
            return False

        try:
            guild = self.bot.get_guild(int(BotConfig.GUILD_ID)) or await self.bot.fetch_guild(
                int(BotConfig.GUILD_ID)
            )
        except (ValueError, discord.HTTPException) as e:
            logger.error(f"Cannot fetch guild {BotConfig.GUILD_ID}: {e}")
            return False

        me = guild.me
        channel = next(
            (c for c in guild.text_channels if me is not None and c.permissions_for(me).send_messages),
            None,
        )
        if channel is None:
            logger.error("Cannot find available text channel")
            return False

        logger.info("Auto-executing ping to maintain application active status")
        try:
            await channel.send(content=UPKEEP_MESSAGE)
        except discord.HTTPException as e:
            logger.error(f"Error during auto-execution send: {e}")
            return False
        return True

    # ==================== Handlers ====================

    def _latency_ms(self) -> str:
        latency = self.bot.latency
        return f"{round(latency * 1000)}ms" if math.isfinite(latency) else "n/a"

    def _auto_execution_line(self) -> str:
        scheduler = self.bot.scheduler
        if scheduler is None:
            return "⏸️ Auto-execution is turned off (ENABLE_AUTO_EXECUTION=false)."
        if not scheduler.enabled:
            return "⏸️ Auto-execution is disabled. Use /auto-execution enable to resume."
        return f"📅 Days until next auto-execution: {days_until(scheduler.remaining())} day(s)"

    async def handle_ping(self, ctx: CommandContext) -> CommandReply:
        return CommandReply(
            content=(
                "✅ **Pong!**\n"
                f"💓 API Latency: {self._latency_ms()}\n"
                "✅ Bot is working properly\n"
                f"{self._auto_execution_line()}\n"
                "🎖️ Your Active Developer status has been updated!"
            )
        )

    async def handle_uptime(self, ctx: CommandContext) -> CommandReply:
        return CommandReply(
            content=(
                "✅ **Bot Uptime**\n"
                f"📊 Total: {format_uptime(self.bot.uptime_seconds())}\n"
                f"🚀 Started: <t:{int(self.bot.start_time)}:R>\n"
                "✅ Status: Online and operational"
            )
        )

    def _schedule_lines(self) -> str:
        scheduler = self.bot.scheduler
        if scheduler is None:
            return "⏸️ Auto-execution is turned off (ENABLE_AUTO_EXECUTION=false)"
        if scheduler.enabled:
            nxt = scheduler.next_execution()
            next_text = _timestamp(nxt, "F") if nxt else "Within the next check"
            remaining = format_remaining(scheduler.remaining())
        else:
            next_text = "Paused (auto-execution disabled)"
            remaining = "N/A (disabled)"
        return (
            f"📅 Last auto-execution: {_timestamp(scheduler.last_execution)}\n"
            f"⏰ Next scheduled: {next_text}\n"
            f"⏳ Time remaining: {remaining}\n"
            f"✅ Auto-execution: {'Enabled' if scheduler.enabled else 'Disabled'}"
        )

    async def handle_status(self, ctx: CommandContext) -> CommandReply:
        return CommandReply(
            content=(
                f"🎖️ **Active Developer Badge Status**\n{DIVIDER}\n"
                f"{self._schedule_lines()}\n"
                "🤖 Bot Status: Online and maintaining your badge"
            ),
            ephemeral=False,
        )

    async def handle_auto_enable(self, ctx: CommandContext) -> CommandReply:
        scheduler = self.bot.scheduler
        if scheduler is None:
            return CommandReply.error("Auto-execution is turned off by ENABLE_AUTO_EXECUTION=false.")
        scheduler.set_enabled(True)
        scheduler.arm()
        nxt = scheduler.next_execution()
        logger.info(f"{ctx.user_tag} enabled auto-execution")
        return CommandReply.success(
            "Auto-execution enabled.\n"
            f"📅 Next scheduled: {_timestamp(nxt, 'F') if nxt else 'at the next check'}\n"
            f"⏱️ Interval: {scheduler.execution.interval_days} days"
        )

    async def handle_auto_disable(self, ctx: CommandContext) -> CommandReply:
        scheduler = self.bot.scheduler
        if scheduler is None:
            return CommandReply.error("Auto-execution is turned off by ENABLE_AUTO_EXECUTION=false.")
        scheduler.set_enabled(False)
        logger.info(f"{ctx.user_tag} disabled auto-execution")
        return CommandReply(
            content="⏸️ Auto-execution disabled. No automated runs will occur until re-enabled."
        )

    async def handle_auto_status(self, ctx: CommandContext) -> CommandReply:
        return CommandReply(content=f"🤖 **Auto-Execution Status**\n{DIVIDER}\n{self._schedule_lines()}")

    async def handle_help(self, ctx: CommandContext) -> CommandReply:
        embed = discord.Embed(
            title="📖 Available Commands",
            description="Slash commands provided by this bot",
            color=discord.Color.blurple(),
        )
        embed.add_field(
            name="Badge & Info",
            value=(
                "`/ping` – Check bot latency and badge status\n"
                "`/uptime` – View bot uptime\n"
                "`/status` – Show next auto-execution date\n"
                "`/auto-execution <enable|disable|status>` – Control auto-execution\n"
                "`/serverinfo` – Display server information\n"
                "`/stats` – View bot statistics"
            ),
            inline=False,
        )
        embed.add_field(
            name="Lookups",
            value=(
                "`/userinfo [user]`, `/avatar [user]` – User details and avatar\n"
                "`/roleinfo <role>`, `/channelinfo [channel]` – Role and channel details\n"
                "`/invite` – Bot invite link"
            ),
            inline=False,
        )
        embed.add_field(
            name="Moderation",
            value=(
                "`/purge [amount]` – Delete recent messages\n"
                "`/lock`, `/unlock`, `/slowmode <seconds>` – Channel controls\n"
                "`/kick`, `/ban`, `/mute`, `/unmute`, `/warn` – Member actions"
            ),
            inline=False,
        )
        embed.add_field(
            name="Tracking & Notifications",
            value=(
                "`/tracking <toggle|channel|status|ignore-channel|events>` – Activity tracking\n"
                "`/twitch-notify <add|remove|list|channel>` – Twitch live notifications"
            ),
            inline=False,
        )
        embed.add_field(
            name="Translation",
            value=(
                "`/translate-setup`, `/translate-disable` – Auto-translate a channel\n"
                "`/translate-config`, `/translate-output-channel` – Display settings\n"
                "`/translate-list`, `/translate-status` – Current setup\n"
                "`/translate <text> [to] [from]` – Translate text"
            ),
            inline=False,
        )
        embed.add_field(
            name=f"Prefix Commands (use {BotConfig.COMMAND_PREFIX}command)",
            value=", ".join(f"`{BotConfig.COMMAND_PREFIX}{n}`" for n in ("help", "ping", "uptime", "prefix")),
            inline=False,
        )
        return CommandReply(embed=embed)

    async def handle_stats(self, ctx: CommandContext) -> CommandReply:
        guilds = self.bot.guilds
        embed = discord.Embed(title="📊 Bot Statistics", color=discord.Color.blue())
        embed.add_field(name="Uptime", value=format_uptime(self.bot.uptime_seconds()), inline=True)
        embed.add_field(name="Servers", value=str(len(guilds)), inline=True)
        embed.add_field(name="Users", value=str(sum(g.member_count or 0 for g in guilds)), inline=True)
        embed.add_field(name="Channels", value=str(sum(len(g.channels) for g in guilds)), inline=True)
        embed.add_field(name="Latency", value=self._latency_ms(), inline=True)
        embed.add_field(
            name="Versions",
            value=f"discord.py {discord.__version__} | Python {platform.python_version()}",
            inline=False,
        )
        return CommandReply(embed=embed, ephemeral=False)

    async def handle_serverinfo(self, ctx: CommandContext) -> CommandReply:
        guild = self.bot.get_guild(int(ctx.guild_id))  # type: ignore[arg-type]
        if guild is None:
            return CommandReply.error("Server information is not available.")

        embed = discord.Embed(title=guild.name, description=f"Server ID: {guild.id}", color=discord.Color.blue())
        embed.add_field(name="Owner", value=f"<@{guild.owner_id}>" if guild.owner_id else "Unknown", inline=True)
        embed.add_field(name="Members", value=str(guild.member_count or 0), inline=True)
        embed.add_field(name="Channels", value=str(len(guild.channels)), inline=True)
        embed.add_field(name="Roles", value=str(len(guild.roles)), inline=True)
        embed.add_field(name="Boost Level", value=str(guild.premium_tier), inline=True)
        embed.add_field(name="Created", value=_timestamp(guild.created_at, "D"), inline=True)
        if guild.icon:
            embed.set_thumbnail(url=guild.icon.url)
        return CommandReply(embed=embed, ephemeral=False)

    # ==================== Prefix commands ====================

    async def handle_prefix_help(self, ctx: CommandContext) -> CommandReply:
        return await self.handle_help(ctx)

    async def handle_prefix_ping(self, ctx: CommandContext) -> CommandReply:
        return CommandReply(
            content=f"🏓 **Pong!**\n💓 API Latency: {self._latency_ms()}\n✅ Bot is working properly"
        )

    async def handle_prefix_uptime(self, ctx: CommandContext) -> CommandReply:
        return await self.handle_uptime(ctx)

    async def handle_prefix_prefix(self, ctx: CommandContext) -> CommandReply:
        prefix = BotConfig.COMMAND_PREFIX
        return CommandReply(
            content=(
                f"📋 **Current Command Prefix:** `{prefix}`\n"
                "\n💡 You can change this in the `.env` file by setting:\n"
                f"```\nCOMMAND_PREFIX={prefix}\n```\n"
                "Then restart the bot for changes to take effect."
            )
        )

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        prefix = BotConfig.COMMAND_PREFIX
        if message.author.bot or not prefix or not message.content.startswith(prefix):
            return

        args = message.content[len(prefix) :].split()
        if not args:
            return
        name = args.pop(0).lower()

        if name not in self.bot.prefix_registry:
            reply = CommandReply(
                content=f"❌ Unknown command `{prefix}{name}`. Use `{prefix}help` for available commands."
            )
        else:
            reply = await self.bot.prefix_registry.dispatch(context_from_message(message, name, args))

        try:
            if reply.embed is not None:
                await message.reply(content=reply.content, embed=reply.embed)
            else:
                await message.reply(content=reply.content)
        except discord.HTTPException as e:
            logger.error(f"Error replying to prefix command '{name}': {e}")

    # ==================== Slash commands ====================

    @app_commands.command(name="ping", description="Check bot latency and badge status")
    async def ping(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="uptime", description="View bot uptime")
    async def uptime(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="status", description="Show Active Developer badge upkeep status")
    async def status(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    auto_execution = app_commands.Group(name="auto-execution", description="Control badge auto-execution")

    @auto_execution.command(name="enable", description="Resume automatic badge upkeep")
    async def auto_enable(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @auto_execution.command(name="disable", description="Pause automatic badge upkeep")
    async def auto_disable(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @auto_execution.command(name="status", description="Show auto-execution state")
    async def auto_status(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="help", description="Show available commands")
    async def help(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="stats", description="View bot statistics")
    async def stats(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="serverinfo", description="Display server information")
    @app_commands.guild_only()
    async def serverinfo(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(Badge(bot))
