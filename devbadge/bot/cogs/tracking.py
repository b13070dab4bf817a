"""Guild activity tracking: /tracking commands and event listeners"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.core.commands import CommandContext, CommandReply, run_interaction
from devbadge.bot.core.formatting import truncate
from devbadge.shared.models.tracking_config import TRACKING_EVENTS

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.tracking")

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"

BLUE = 0x3498DB
GREEN = 0x2ECC71
RED = 0xE74C3C
ORANGE = 0xF39C12
PURPLE = 0x9B59B6


def event_option_name(event: str) -> str:
    """``userUpdates`` -> ``user-updates``"""
    return re.sub(r"(?<!^)([A-Z])", r"-\1", event).lower()


def event_label(event: str) -> str:
    """``userUpdates`` -> ``User Updates``"""
    return re.sub(r"(?<!^)([A-Z])", r" \1", event).title()


def build_tracking_embed(
    title: str, description: str, user: discord.abc.User | None = None, color: int = BLUE
) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=color, timestamp=discord.utils.utcnow())
    if user is not None:
        embed.add_field(name="User", value=f"<@{user.id}> (`{user.id}`)", inline=False)
        embed.add_field(name="Tag", value=str(user), inline=True)
        embed.set_thumbnail(url=user.display_avatar.url)
    return embed


def _content_preview(content: str | None) -> str:
    return truncate(content, 200) if content else "(no content)"


class Tracking(commands.Cog):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot

    async def cog_load(self) -> None:
        registry = self.bot.registry
        for sub in ("toggle", "channel", "status", "ignore-channel", "events"):
            handler = getattr(self, f"handle_{sub.replace('-', '_')}")
            registry.register(f"tracking {sub}", handler, permission="administrator", guild_only=True)

    async def cog_unload(self) -> None:
        for sub in ("toggle", "channel", "status", "ignore-channel", "events"):
            self.bot.registry.unregister(f"tracking {sub}")

    # ==================== Command handlers ====================

    async def handle_toggle(self, ctx: CommandContext) -> CommandReply:
        enabled = bool(ctx.option("enabled", False))
        config = self.bot.tracking_configs.update(ctx.guild_id, enabled=enabled)  # type: ignore[arg-type]
        self.bot.tracking.refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        logger.info(f"{ctx.user_tag} {'enabled' if enabled else 'disabled'} tracking in {ctx.guild_name}")

        tip = ""
        if enabled and not config.channel_id:
            tip = "\n💡 Tip: Set a log channel with `/tracking channel` to send logs to a specific channel."
        return CommandReply.success(
            f"Guild activity tracking has been **{'enabled' if enabled else 'disabled'}**.{tip}"
        )

    async def handle_channel(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        config = self.bot.tracking_configs.update(ctx.guild_id, channel_id=channel_id)  # type: ignore[arg-type]
        self.bot.tracking.refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        tip = "" if config.enabled else "\n💡 Tip: Enable tracking with `/tracking toggle enabled:True`"
        return CommandReply.success(f"Tracking logs will now be sent to <#{channel_id}>.{tip}")

    async def handle_status(self, ctx: CommandContext) -> CommandReply:
        config = self.bot.tracking_configs.get(ctx.guild_id)  # type: ignore[arg-type]
        ignored = ", ".join(f"<#{c}>" for c in config.ignored_channels) or "None"
        log_channel = f"<#{config.channel_id}>" if config.channel_id else "❌ Not set (logs to console)"
        events = "\n".join(
            f"{event_label(e)}: {'✅' if config.events.get(e, True) else '❌'}" for e in TRACKING_EVENTS
        )
        return CommandReply(
            content=(
                f"📊 **Tracking Status for {ctx.guild_name}**\n{DIVIDER}\n"
                f"🔘 **Status:** {'✅ Enabled' if config.enabled else '❌ Disabled'}\n"
                f"📢 **Log Channel:** {log_channel}\n"
                f"🚫 **Ignored Channels:** {ignored}\n\n"
                f"📋 **Event Types:**\n{events}"
            )
        )

    async def handle_ignore_channel(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        config, now_ignored = self.bot.tracking_configs.toggle_ignored_channel(ctx.guild_id, channel_id)  # type: ignore[arg-type]
        self.bot.tracking.refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        action = "added" if now_ignored else "removed"
        preposition = "to" if now_ignored else "from"
        return CommandReply.success(f"<#{channel_id}> has been **{action}** {preposition} the tracking ignore list.")

    async def handle_events(self, ctx: CommandContext) -> CommandReply:
        changes = {
            event: bool(ctx.options[event_option_name(event)])
            for event in TRACKING_EVENTS
            if ctx.options.get(event_option_name(event)) is not None
        }
        if not changes:
            return CommandReply.error(
                "No event options were provided. Use `/tracking events` with at least one option."
            )
        config = self.bot.tracking_configs.update(ctx.guild_id, events=changes)  # type: ignore[arg-type]
        self.bot.tracking.refresh(ctx.guild_id, config)  # type: ignore[arg-type]
        lines = "\n".join(f"• {event}: {'✅' if value else '❌'}" for event, value in changes.items())
        return CommandReply.success(f"Tracking event preferences updated:\n{lines}")

    # ==================== Slash commands ====================

    tracking = app_commands.Group(
        name="tracking",
        description="Guild activity tracking",
        guild_only=True,
        default_permissions=discord.Permissions(administrator=True),
    )

    @tracking.command(name="toggle", description="Enable or disable activity tracking")
    @app_commands.describe(enabled="Whether tracking is enabled")
    async def toggle(self, interaction: discord.Interaction, enabled: bool) -> None:
        await run_interaction(self.bot.registry, interaction)

    @tracking.command(name="channel", description="Set the tracking log channel")
    @app_commands.describe(channel="Channel to send tracking logs to")
    async def channel(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await run_interaction(self.bot.registry, interaction)

    @tracking.command(name="status", description="View tracking configuration")
    async def status(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @tracking.command(name="ignore-channel", description="Toggle a channel on the tracking ignore list")
    @app_commands.describe(channel="Channel to ignore or stop ignoring")
    async def ignore_channel(self, interaction: discord.Interaction, channel: discord.abc.GuildChannel) -> None:
        await run_interaction(self.bot.registry, interaction)

    @tracking.command(name="events", description="Choose which event types are tracked")
    @app_commands.rename(
        user_updates="user-updates",
        channel_updates="channel-updates",
        scheduled_events="scheduled-events",
        stage_instances="stage-instances",
        moderation_rules="moderation-rules",
    )
    async def events(
        self,
        interaction: discord.Interaction,
        messages: bool | None = None,
        members: bool | None = None,
        voice: bool | None = None,
        reactions: bool | None = None,
        channels: bool | None = None,
        user_updates: bool | None = None,
        channel_updates: bool | None = None,
        roles: bool | None = None,
        guild: bool | None = None,
        threads: bool | None = None,
        scheduled_events: bool | None = None,
        stickers: bool | None = None,
        webhooks: bool | None = None,
        integrations: bool | None = None,
        invites: bool | None = None,
        stage_instances: bool | None = None,
        moderation_rules: bool | None = None,
        interactions: bool | None = None,
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    # ==================== Logging ====================

    async def log_event(
        self,
        guild: discord.Guild | None,
        event: str,
        title: str,
        description: str,
        *,
        user: discord.abc.User | None = None,
        color: int = BLUE,
        channel_id: int | None = None,
    ) -> None:
        if guild is None or not self.bot.tracking.should_log(guild.id, event, channel_id):
            return

        embed = build_tracking_embed(title, description, user, color)
        config = self.bot.tracking.config_for(guild.id)
        if config.channel_id:
            channel = self.bot.get_channel(int(config.channel_id))
            if isinstance(channel, discord.abc.Messageable):
                try:
                    if await self.bot.rate_limiter.safe_send_message(channel, embed=embed):
                        return
                except discord.HTTPException as e:
                    logger.warning(f"Failed to send tracking log to {config.channel_id}: {e}")

        logger.info(f"[{guild.name}] {title}: {description}")

    def _is_log_channel(self, guild: discord.Guild, channel_id: int) -> bool:
        return self.bot.tracking.config_for(guild.id).channel_id == str(channel_id)

    # ==================== Listeners ====================

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return
        if self._is_log_channel(message.guild, message.channel.id):
            return
        await self.log_event(
            message.guild, "messages", "💬 Message Sent",
            f"**Channel:** <#{message.channel.id}>\n**Content:** {_content_preview(message.content)}",
            user=message.author, channel_id=message.channel.id,
        )

    @commands.Cog.listener()
    async def on_message_delete(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return
        await self.log_event(
            message.guild, "messages", "🗑️ Message Deleted",
            f"**Channel:** <#{message.channel.id}>\n**Content:** {_content_preview(message.content)}",
            user=message.author, color=RED, channel_id=message.channel.id,
        )

    @commands.Cog.listener()
    async def on_bulk_message_delete(self, messages: list[discord.Message]) -> None:
        if not messages or messages[0].guild is None:
            return
        channel = messages[0].channel
        await self.log_event(
            messages[0].guild, "channels", "🗑️ Bulk Messages Deleted",
            f"**Channel:** <#{channel.id}>\n**Count:** {len(messages)} messages deleted",
            color=RED, channel_id=channel.id,
        )

    @commands.Cog.listener()
    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        if after.guild is None or after.author.bot or before.content == after.content:
            return
        await self.log_event(
            after.guild, "messages", "✏️ Message Edited",
            f"**Channel:** <#{after.channel.id}>\n"
            f"**Old Content:** ```{_content_preview(before.content)}```\n"
            f"**New Content:** ```{_content_preview(after.content)}```",
            user=after.author, color=ORANGE, channel_id=after.channel.id,
        )

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        await self.log_event(
            member.guild, "members", "➕ Member Joined",
            f"**Account Created:** <t:{int(member.created_at.timestamp())}:F>",
            user=member, color=GREEN,
        )

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member) -> None:
        await self.log_event(member.guild, "members", "➖ Member Left", f"**Member:** {member}", user=member, color=RED)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        changes = []
        if before.nick != after.nick:
            changes.append(f"**Nickname:** {before.nick or '(none)'} → {after.nick or '(none)'}")
        added = [r.mention for r in after.roles if r not in before.roles]
        removed = [r.mention for r in before.roles if r not in after.roles]
        if added:
            changes.append(f"**Roles Added:** {', '.join(added)}")
        if removed:
            changes.append(f"**Roles Removed:** {', '.join(removed)}")
        if changes:
            await self.log_event(after.guild, "userUpdates", "👤 Member Updated", "\n".join(changes), user=after, color=PURPLE)

    @commands.Cog.listener()
    async def on_user_update(self, before: discord.User, after: discord.User) -> None:
        changes = []
        if before.name != after.name:
            changes.append(f"**Username:** {before.name} → {after.name}")
        if before.display_avatar != after.display_avatar:
            changes.append("**Avatar changed**")
        if not changes:
            return
        for guild in self.bot.guilds:
            if guild.get_member(after.id):
                await self.log_event(guild, "userUpdates", "👤 User Updated", "\n".join(changes), user=after, color=PURPLE)

    @commands.Cog.listener()
    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        if before.channel == after.channel:
            return
        if after.channel and not before.channel:
            title, text, color, channel = "🔊 Joined Voice", f"**Channel:** {after.channel.mention}", GREEN, after.channel
        elif before.channel and not after.channel:
            title, text, color, channel = "🔇 Left Voice", f"**Channel:** {before.channel.mention}", RED, before.channel
        else:
            title = "🔀 Switched Voice"
            text = f"**From:** {before.channel.mention} → **To:** {after.channel.mention}"  # type: ignore[union-attr]
            color, channel = BLUE, after.channel
        await self.log_event(member.guild, "voice", title, text, user=member, color=color, channel_id=channel.id)  # type: ignore[union-attr]

    @commands.Cog.listener()
    async def on_reaction_add(self, reaction: discord.Reaction, user: discord.User | discord.Member) -> None:
        message = reaction.message
        if user.bot or message.guild is None:
            return
        await self.log_event(
            message.guild, "reactions", "😀 Reaction Added",
            f"**Emoji:** {reaction.emoji}\n**Message:** {message.jump_url}",
            user=user, channel_id=message.channel.id,
        )

    @commands.Cog.listener()
    async def on_reaction_remove(self, reaction: discord.Reaction, user: discord.User | discord.Member) -> None:
        message = reaction.message
        if user.bot or message.guild is None:
            return
        await self.log_event(
            message.guild, "reactions", "😶 Reaction Removed",
            f"**Emoji:** {reaction.emoji}\n**Message:** {message.jump_url}",
            user=user, color=ORANGE, channel_id=message.channel.id,
        )

    @commands.Cog.listener()
    async def on_guild_channel_create(self, channel: discord.abc.GuildChannel) -> None:
        await self.log_event(
            channel.guild, "channels", "📁 Channel Created",
            f"**Channel:** {channel.mention}\n**Type:** {channel.type}", color=GREEN,
        )

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        await self.log_event(
            channel.guild, "channels", "🗑️ Channel Deleted",
            f"**Channel:** #{channel.name}\n**Type:** {channel.type}", color=RED,
        )

    @commands.Cog.listener()
    async def on_guild_channel_update(self, before: discord.abc.GuildChannel, after: discord.abc.GuildChannel) -> None:
        changes = []
        if before.name != after.name:
            changes.append(f"**Name:** {before.name} → {after.name}")
        before_topic, after_topic = getattr(before, "topic", None), getattr(after, "topic", None)
        if before_topic != after_topic:
            changes.append(f"**Topic:** {before_topic or '(none)'} → {after_topic or '(none)'}")
        if changes:
            await self.log_event(
                after.guild, "channelUpdates", "🔧 Channel Updated",
                f"**Channel:** {after.mention}\n" + "\n".join(changes), color=ORANGE, channel_id=after.id,
            )

    @commands.Cog.listener()
    async def on_guild_role_create(self, role: discord.Role) -> None:
        await self.log_event(role.guild, "roles", "🏷️ Role Created", f"**Role:** {role.mention}", color=GREEN)

    @commands.Cog.listener()
    async def on_guild_role_delete(self, role: discord.Role) -> None:
        await self.log_event(role.guild, "roles", "🗑️ Role Deleted", f"**Role:** {role.name}", color=RED)

    @commands.Cog.listener()
    async def on_guild_role_update(self, before: discord.Role, after: discord.Role) -> None:
        changes = []
        if before.name != after.name:
            changes.append(f"**Name:** {before.name} → {after.name}")
        if before.color != after.color:
            changes.append(f"**Color:** {before.color} → {after.color}")
        if before.permissions != after.permissions:
            changes.append("**Permissions changed**")
        if changes:
            await self.log_event(after.guild, "roles", "🔧 Role Updated", f"**Role:** {after.mention}\n" + "\n".join(changes), color=ORANGE)

    @commands.Cog.listener()
    async def on_guild_update(self, before: discord.Guild, after: discord.Guild) -> None:
        changes = []
        if before.name != after.name:
            changes.append(f"**Name:** {before.name} → {after.name}")
        if before.icon != after.icon:
            changes.append("**Icon changed**")
        if before.owner_id != after.owner_id:
            changes.append(f"**Owner:** <@{before.owner_id}> → <@{after.owner_id}>")
        if changes:
            await self.log_event(after, "guild", "🏠 Server Updated", "\n".join(changes), color=ORANGE)

    @commands.Cog.listener()
    async def on_thread_create(self, thread: discord.Thread) -> None:
        await self.log_event(
            thread.guild, "threads", "🧵 Thread Created",
            f"**Thread:** {thread.mention}\n**Parent:** <#{thread.parent_id}>",
            color=GREEN, channel_id=thread.parent_id,
        )

    @commands.Cog.listener()
    async def on_thread_delete(self, thread: discord.Thread) -> None:
        await self.log_event(
            thread.guild, "threads", "🗑️ Thread Deleted",
            f"**Thread:** {thread.name}\n**Parent:** <#{thread.parent_id}>",
            color=RED, channel_id=thread.parent_id,
        )

    @commands.Cog.listener()
    async def on_scheduled_event_create(self, event: discord.ScheduledEvent) -> None:
        await self.log_event(
            event.guild, "scheduledEvents", "📅 Event Created",
            f"**Name:** {event.name}\n**Starts:** <t:{int(event.start_time.timestamp())}:F>", color=GREEN,
        )

    @commands.Cog.listener()
    async def on_scheduled_event_delete(self, event: discord.ScheduledEvent) -> None:
        await self.log_event(event.guild, "scheduledEvents", "🗑️ Event Deleted", f"**Name:** {event.name}", color=RED)

    @commands.Cog.listener()
    async def on_guild_stickers_update(
        self, guild: discord.Guild, before: list[discord.GuildSticker], after: list[discord.GuildSticker]
    ) -> None:
        added = [s.name for s in after if s not in before]
        removed = [s.name for s in before if s not in after]
        if added:
            await self.log_event(guild, "stickers", "🖼️ Sticker Added", ", ".join(added), color=GREEN)
        if removed:
            await self.log_event(guild, "stickers", "🗑️ Sticker Removed", ", ".join(removed), color=RED)

    @commands.Cog.listener()
    async def on_webhooks_update(self, channel: discord.abc.GuildChannel) -> None:
        await self.log_event(
            channel.guild, "webhooks", "🪝 Webhooks Updated", f"**Channel:** {channel.mention}",
            color=ORANGE, channel_id=channel.id,
        )

    @commands.Cog.listener()
    async def on_integration_create(self, integration: discord.Integration) -> None:
        await self.log_event(
            integration.guild, "integrations", "🔌 Integration Added",
            f"**Name:** {integration.name}\n**Type:** {integration.type}", color=GREEN,
        )

    @commands.Cog.listener()
    async def on_raw_integration_delete(self, payload: discord.RawIntegrationDeleteEvent) -> None:
        await self.log_event(
            self.bot.get_guild(payload.guild_id), "integrations", "🔌 Integration Removed",
            f"**Integration ID:** {payload.integration_id}", color=RED,
        )

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite) -> None:
        guild = invite.guild if isinstance(invite.guild, discord.Guild) else None
        channel_id = invite.channel.id if invite.channel else None
        await self.log_event(
            guild, "invites", "📨 Invite Created",
            f"**Code:** {invite.code}\n**Channel:** <#{channel_id}>\n**Max Uses:** {invite.max_uses or '∞'}",
            user=invite.inviter, color=GREEN, channel_id=channel_id,
        )

    @commands.Cog.listener()
    async def on_invite_delete(self, invite: discord.Invite) -> None:
        guild = invite.guild if isinstance(invite.guild, discord.Guild) else None
        channel_id = invite.channel.id if invite.channel else None
        await self.log_event(guild, "invites", "🗑️ Invite Deleted", f"**Code:** {invite.code}", color=RED, channel_id=channel_id)

    @commands.Cog.listener()
    async def on_stage_instance_create(self, stage: discord.StageInstance) -> None:
        await self.log_event(
            stage.guild, "stageInstances", "🎙️ Stage Started",
            f"**Topic:** {stage.topic}\n**Channel:** <#{stage.channel_id}>", color=GREEN, channel_id=stage.channel_id,
        )

    @commands.Cog.listener()
    async def on_stage_instance_delete(self, stage: discord.StageInstance) -> None:
        await self.log_event(
            stage.guild, "stageInstances", "🎙️ Stage Ended",
            f"**Topic:** {stage.topic}", color=RED, channel_id=stage.channel_id,
        )

    @commands.Cog.listener()
    async def on_automod_rule_create(self, rule: discord.AutoModRule) -> None:
        await self.log_event(rule.guild, "moderationRules", "🛡️ AutoMod Rule Created", f"**Rule:** {rule.name}", color=GREEN)

    @commands.Cog.listener()
    async def on_automod_rule_delete(self, rule: discord.AutoModRule) -> None:
        await self.log_event(rule.guild, "moderationRules", "🛡️ AutoMod Rule Deleted", f"**Rule:** {rule.name}", color=RED)

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.application_command or interaction.guild is None:
            return
        name = interaction.command.qualified_name if interaction.command else "unknown"
        await self.log_event(
            interaction.guild, "interactions", "⚡ Command Used",
            f"**Command:** /{name}\n**Channel:** <#{interaction.channel_id}>",
            user=interaction.user, channel_id=interaction.channel_id,
        )


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(Tracking(bot))
