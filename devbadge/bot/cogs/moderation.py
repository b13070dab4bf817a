"""Server moderation commands"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.core.commands import PERMISSION_LABELS, CommandContext, CommandReply, run_interaction

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.moderation")

MAX_PURGE = 1000
MAX_SLOWMODE = 21600  # 6 hours
MAX_MUTE_MINUTES = 40320  # 28 days, Discord's timeout limit
# Discord refuses to bulk-delete messages older than this
BULK_DELETE_AGE = timedelta(days=14)
NO_REASON = "No reason provided"

MESSAGE_CHANNELS = (discord.TextChannel, discord.VoiceChannel, discord.StageChannel, discord.Thread)
LOCKABLE_CHANNELS = (discord.TextChannel, discord.VoiceChannel, discord.StageChannel)


class Moderation(commands.Cog):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot

    async def cog_load(self) -> None:
        registry = self.bot.registry
        registry.register(
            "purge", self.handle_purge, permission="manage_messages", guild_only=True, defer=True, private=True
        )
        registry.register("lock", self.handle_lock, permission="manage_channels", guild_only=True)
        registry.register("unlock", self.handle_unlock, permission="manage_channels", guild_only=True)
        registry.register("slowmode", self.handle_slowmode, permission="manage_channels", guild_only=True)
        registry.register("kick", self.handle_kick, permission="kick_members", guild_only=True)
        registry.register("ban", self.handle_ban, permission="ban_members", guild_only=True)
        registry.register("mute", self.handle_mute, permission="moderate_members", guild_only=True)
        registry.register("unmute", self.handle_unmute, permission="moderate_members", guild_only=True)
        registry.register("warn", self.handle_warn, permission="moderate_members", guild_only=True)

    async def cog_unload(self) -> None:
        for name in ("purge", "lock", "unlock", "slowmode", "kick", "ban", "mute", "unmute", "warn"):
            self.bot.registry.unregister(name)

    # ==================== Lookups and checks ====================

    def _guild(self, ctx: CommandContext) -> discord.Guild | None:
        return self.bot.get_guild(int(ctx.guild_id)) if ctx.guild_id else None

    @staticmethod
    def _bot_missing(guild: discord.Guild, permission: str, action: str) -> CommandReply | None:
        me = guild.me
        if me is not None and getattr(me.guild_permissions, permission):
            return None
        return CommandReply.error(f'I need the "{PERMISSION_LABELS[permission]}" permission to {action}.')

    @staticmethod
    async def _member(guild: discord.Guild, user_id: str | None) -> discord.Member | None:
        if not user_id:
            return None
        member = guild.get_member(int(user_id))
        if member is not None:
            return member
        try:
            return await guild.fetch_member(int(user_id))
        except discord.NotFound:
            return None

    @staticmethod
    def _hierarchy_problem(guild: discord.Guild, ctx: CommandContext, target: discord.Member, verb: str) -> str | None:
        me = guild.me
        if str(target.id) == ctx.user_id:
            return f"You cannot {verb} yourself."
        if me is not None and target.id == me.id:
            return f"I cannot {verb} myself."
        if target.id == guild.owner_id:
            return f"You cannot {verb} the server owner."

        author = guild.get_member(int(ctx.user_id))
        if author is not None and author.id != guild.owner_id and target.top_role >= author.top_role:
            return f"You cannot {verb} a member whose top role is equal to or higher than yours."
        if me is not None and target.top_role >= me.top_role:
            return f"I cannot {verb} a member whose top role is equal to or higher than mine."
        return None

    async def _target(
        self, ctx: CommandContext, permission: str, verb: str
    ) -> tuple[discord.Guild | None, discord.Member | None, CommandReply | None]:
        guild = self._guild(ctx)
        if guild is None:
            return None, None, CommandReply.error("Server information is not available.")
        missing = self._bot_missing(guild, permission, f"{verb} users")
        if missing is not None:
            return guild, None, missing

        member = await self._member(guild, ctx.option("user"))
        if member is None:
            return guild, None, CommandReply.error("That user is not a member of this server.")
        problem = self._hierarchy_problem(guild, ctx, member, verb)
        if problem is not None:
            return guild, member, CommandReply.error(problem)
        return guild, member, None

    def _channel(self, guild: discord.Guild, ctx: CommandContext) -> discord.abc.GuildChannel | discord.Thread | None:
        return guild.get_channel_or_thread(int(ctx.channel_id)) if ctx.channel_id else None

    @staticmethod
    def _audit_reason(ctx: CommandContext, reason: str) -> str:
        return f"{reason} (by {ctx.user_tag})"

    # ==================== Channel handlers ====================

    async def handle_purge(self, ctx: CommandContext) -> CommandReply:
        amount = ctx.option("amount")
        if amount is not None and not 1 <= int(amount) <= MAX_PURGE:
            return CommandReply.error(f"Amount must be between 1 and {MAX_PURGE}.")

        guild = self._guild(ctx)
        if guild is None:
            return CommandReply.error("Server information is not available.")
        missing = self._bot_missing(guild, "manage_messages", "delete messages")
        if missing is not None:
            return missing
        channel = self._channel(guild, ctx)
        if not isinstance(channel, MESSAGE_CHANNELS):
            return CommandReply.error("This channel type does not support purging messages.")

        try:
            deleted = await channel.purge(
                limit=int(amount) if amount is not None else None,
                after=discord.utils.utcnow() - BULK_DELETE_AGE,
                oldest_first=False,
                reason=self._audit_reason(ctx, "/purge"),
            )
        except discord.HTTPException as e:
            logger.error(f"Error purging messages in {ctx.channel_id}: {e}")
            return CommandReply.error("An error occurred while trying to delete messages.")

        count = len(deleted)
        logger.info(f"{ctx.user_tag} purged {count} messages in #{channel.name}")
        text = f"Successfully deleted {count} message(s)."
        if count < (int(amount) if amount is not None else 100):
            text += "\n⚠️ Note: Messages older than 14 days cannot be bulk deleted."
        return CommandReply.success(text)

    async def _set_send_messages(self, ctx: CommandContext, allowed: bool | None) -> CommandReply:
        verb = "lock" if allowed is False else "unlock"
        guild = self._guild(ctx)
        if guild is None:
            return CommandReply.error("Server information is not available.")
        missing = self._bot_missing(guild, "manage_channels", f"{verb} channels")
        if missing is not None:
            return missing
        channel = self._channel(guild, ctx)
        if not isinstance(channel, LOCKABLE_CHANNELS):
            return CommandReply.error(f"This channel type cannot be {verb}ed.")

        everyone = guild.default_role
        overwrite = channel.overwrites_for(everyone)
        overwrite.send_messages = allowed
        try:
            await channel.set_permissions(
                everyone,
                overwrite=None if overwrite.is_empty() else overwrite,
                reason=self._audit_reason(ctx, f"/{verb}"),
            )
        except discord.HTTPException as e:
            logger.error(f"Error trying to {verb} channel {channel.id}: {e}")
            return CommandReply.error(f"Failed to {verb} the channel.")

        logger.info(f"{ctx.user_tag} {verb}ed channel #{channel.name}")
        if allowed is False:
            return CommandReply(
                content="🔒 Channel locked! Only members with specific roles can send messages.", ephemeral=False
            )
        return CommandReply(content="🔓 Channel unlocked! Everyone can send messages again.", ephemeral=False)

    async def handle_lock(self, ctx: CommandContext) -> CommandReply:
        return await self._set_send_messages(ctx, False)

    async def handle_unlock(self, ctx: CommandContext) -> CommandReply:
        return await self._set_send_messages(ctx, None)

    async def handle_slowmode(self, ctx: CommandContext) -> CommandReply:
        seconds = int(ctx.option("seconds", 0))
        if not 0 <= seconds <= MAX_SLOWMODE:
            return CommandReply.error(f"Slowmode must be between 0 and {MAX_SLOWMODE} seconds.")

        guild = self._guild(ctx)
        if guild is None:
            return CommandReply.error("Server information is not available.")
        missing = self._bot_missing(guild, "manage_channels", "change slowmode")
        if missing is not None:
            return missing
        channel = self._channel(guild, ctx)
        if not isinstance(channel, MESSAGE_CHANNELS):
            return CommandReply.error("This channel type does not support slowmode.")

        try:
            await channel.edit(slowmode_delay=seconds, reason=self._audit_reason(ctx, "/slowmode"))
        except discord.HTTPException as e:
            logger.error(f"Error setting slowmode in {channel.id}: {e}")
            return CommandReply.error("Failed to set slowmode.")

        logger.info(f"{ctx.user_tag} set slowmode to {seconds}s in #{channel.name}")
        text = "🐇 Slowmode disabled!" if seconds == 0 else f"🐢 Slowmode set to {seconds} second(s)"
        return CommandReply(content=text, ephemeral=False)

    # ==================== Member handlers ====================

    async def handle_kick(self, ctx: CommandContext) -> CommandReply:
        _, member, denied = await self._target(ctx, "kick_members", "kick")
        if denied is not None:
            return denied
        reason = ctx.option("reason", NO_REASON)
        try:
            await member.kick(reason=self._audit_reason(ctx, reason))  # type: ignore[union-attr]
        except discord.HTTPException as e:
            logger.error(f"Error kicking {member}: {e}")
            return CommandReply.error("Failed to kick the user.")

        logger.info(f"{ctx.user_tag} kicked {member}: {reason}")
        return CommandReply(content=f"✅ **{member}** has been kicked.\n📝 **Reason:** {reason}", ephemeral=False)

    async def handle_ban(self, ctx: CommandContext) -> CommandReply:
        guild = self._guild(ctx)
        if guild is None:
            return CommandReply.error("Server information is not available.")
        missing = self._bot_missing(guild, "ban_members", "ban users")
        if missing is not None:
            return missing

        user_id = ctx.option("user")
        reason = ctx.option("reason", NO_REASON)
        member = await self._member(guild, user_id)
        if member is not None:
            problem = self._hierarchy_problem(guild, ctx, member, "ban")
            if problem is not None:
                return CommandReply.error(problem)
        elif not user_id:
            return CommandReply.error("Please specify a user to ban.")

        # Users who already left can still be banned by id
        target = member if member is not None else discord.Object(id=int(user_id))
        name = str(member) if member is not None else f"<@{user_id}>"
        try:
            await guild.ban(target, reason=self._audit_reason(ctx, reason))
        except discord.HTTPException as e:
            logger.error(f"Error banning {name}: {e}")
            return CommandReply.error("Failed to ban the user.")

        logger.info(f"{ctx.user_tag} banned {name}: {reason}")
        return CommandReply(content=f"✅ **{name}** has been banned.\n📝 **Reason:** {reason}", ephemeral=False)

    async def handle_mute(self, ctx: CommandContext) -> CommandReply:
        minutes = int(ctx.option("minutes", 0))
        if not 1 <= minutes <= MAX_MUTE_MINUTES:
            return CommandReply.error(f"Duration must be between 1 and {MAX_MUTE_MINUTES} minutes.")
        _, member, denied = await self._target(ctx, "moderate_members", "mute")
        if denied is not None:
            return denied
        reason = ctx.option("reason", NO_REASON)
        try:
            await member.timeout(timedelta(minutes=minutes), reason=self._audit_reason(ctx, reason))  # type: ignore[union-attr]
        except discord.HTTPException as e:
            logger.error(f"Error muting {member}: {e}")
            return CommandReply.error("Failed to mute the user.")

        logger.info(f"{ctx.user_tag} muted {member} for {minutes}m: {reason}")
        return CommandReply(
            content=f"🔇 **{member}** has been muted for {minutes} minute(s).\n📝 **Reason:** {reason}",
            ephemeral=False,
        )

    async def handle_unmute(self, ctx: CommandContext) -> CommandReply:
        _, member, denied = await self._target(ctx, "moderate_members", "unmute")
        if denied is not None:
            return denied
        try:
            await member.timeout(None, reason=self._audit_reason(ctx, "/unmute"))  # type: ignore[union-attr]
        except discord.HTTPException as e:
            logger.error(f"Error unmuting {member}: {e}")
            return CommandReply.error("Failed to unmute the user.")

        logger.info(f"{ctx.user_tag} unmuted {member}")
        return CommandReply(content=f"🔊 **{member}** has been unmuted.", ephemeral=False)

    async def handle_warn(self, ctx: CommandContext) -> CommandReply:
        _, member, denied = await self._target(ctx, "moderate_members", "warn")
        if denied is not None:
            return denied
        reason = ctx.option("reason", NO_REASON)
        logger.info(f"{ctx.user_tag} warned {member}: {reason}")
        return CommandReply(content=f"⚠️ **{member}** has been warned.\n📝 **Reason:** {reason}", ephemeral=False)

    # ==================== Slash commands ====================

    @app_commands.command(name="purge", description="Delete recent messages in this channel")
    @app_commands.guild_only()
    @app_commands.describe(amount="Number of messages to delete (1-1000, default: all bulk-deletable)")
    async def purge(self, interaction: discord.Interaction, amount: int | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="lock", description="Lock the current channel (prevent messages)")
    @app_commands.guild_only()
    async def lock(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="unlock", description="Unlock the current channel")
    @app_commands.guild_only()
    async def unlock(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="slowmode", description="Set channel slowmode delay")
    @app_commands.guild_only()
    @app_commands.describe(seconds="Slowmode delay in seconds (0 to disable)")
    async def slowmode(
        self, interaction: discord.Interaction, seconds: app_commands.Range[int, 0, MAX_SLOWMODE]
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="kick", description="Kick a user from the server")
    @app_commands.guild_only()
    @app_commands.describe(user="User to kick", reason="Reason for kick")
    async def kick(self, interaction: discord.Interaction, user: discord.Member, reason: str | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="ban", description="Ban a user from the server")
    @app_commands.guild_only()
    @app_commands.describe(user="User to ban", reason="Reason for ban")
    async def ban(self, interaction: discord.Interaction, user: discord.User, reason: str | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="mute", description="Mute a user for a specified duration")
    @app_commands.guild_only()
    @app_commands.describe(user="User to mute", minutes="Duration in minutes (1-40320)", reason="Reason for mute")
    async def mute(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        minutes: app_commands.Range[int, 1, MAX_MUTE_MINUTES],
        reason: str | None = None,
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="unmute", description="Unmute a user")
    @app_commands.guild_only()
    @app_commands.describe(user="User to unmute")
    async def unmute(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="warn", description="Warn a user")
    @app_commands.guild_only()
    @app_commands.describe(user="User to warn", reason="Reason for warning")
    async def warn(self, interaction: discord.Interaction, user: discord.Member, reason: str | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(Moderation(bot))
