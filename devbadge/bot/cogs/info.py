"""User, role and channel lookups plus the bot invite link"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.config import BotConfig
from devbadge.bot.core.commands import CommandContext, CommandReply, run_interaction

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.info")

MAX_ROLES_SHOWN = 10
INVITE_PERMISSIONS = discord.Permissions(
    send_messages=True,
    embed_links=True,
    read_message_history=True,
    manage_messages=True,
    manage_channels=True,
    manage_threads=True,
    create_public_threads=True,
    kick_members=True,
    ban_members=True,
    moderate_members=True,
    use_application_commands=True,
)


def _relative(value) -> str:
    return discord.utils.format_dt(value, "R") if value else "Unknown"


class Info(commands.Cog):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot

    async def cog_load(self) -> None:
        registry = self.bot.registry
        registry.register("userinfo", self.handle_userinfo)
        registry.register("avatar", self.handle_avatar)
        registry.register("roleinfo", self.handle_roleinfo, guild_only=True)
        registry.register("channelinfo", self.handle_channelinfo, guild_only=True)
        registry.register("invite", self.handle_invite)

    async def cog_unload(self) -> None:
        for name in ("userinfo", "avatar", "roleinfo", "channelinfo", "invite"):
            self.bot.registry.unregister(name)

    async def _resolve_user(self, ctx: CommandContext) -> discord.User | discord.Member | None:
        """The ``user`` option (or the caller) as a guild member when possible"""
        user_id = int(ctx.option("user", ctx.user_id))
        guild = self.bot.get_guild(int(ctx.guild_id)) if ctx.guild_id else None
        if guild is not None:
            member = guild.get_member(user_id)
            if member is not None:
                return member
        user = self.bot.get_user(user_id)
        if user is not None:
            return user
        try:
            return await self.bot.fetch_user(user_id)
        except discord.NotFound:
            return None

    # ==================== Handlers ====================

    async def handle_userinfo(self, ctx: CommandContext) -> CommandReply:
        target = await self._resolve_user(ctx)
        if target is None:
            return CommandReply.error("User not found.")

        embed = discord.Embed(title=f"👤 {target.display_name}", color=target.color or discord.Color.default())
        embed.add_field(name="Username", value=str(target), inline=True)
        embed.add_field(name="ID", value=str(target.id), inline=True)
        embed.add_field(name="Type", value="🤖 Bot" if target.bot else "👨 User", inline=True)
        embed.add_field(name="Account Created", value=_relative(target.created_at), inline=True)
        if isinstance(target, discord.Member):
            embed.add_field(name="Joined Server", value=_relative(target.joined_at), inline=True)
            # roles[0] is @everyone
            roles = [role.mention for role in reversed(target.roles[1:])]
            shown = " ".join(roles[:MAX_ROLES_SHOWN])
            if len(roles) > MAX_ROLES_SHOWN:
                shown += f" (+{len(roles) - MAX_ROLES_SHOWN} more)"
            embed.add_field(name="Roles", value=shown or "None", inline=False)
        embed.set_thumbnail(url=target.display_avatar.url)
        return CommandReply(embed=embed)

    async def handle_avatar(self, ctx: CommandContext) -> CommandReply:
        target = await self._resolve_user(ctx)
        if target is None:
            return CommandReply.error("User not found.")

        url = target.display_avatar.replace(size=512).url
        embed = discord.Embed(title=f"🖼️ {target.display_name}'s Avatar", url=url, color=discord.Color.blurple())
        embed.set_image(url=url)
        return CommandReply(embed=embed)

    async def handle_roleinfo(self, ctx: CommandContext) -> CommandReply:
        guild = self.bot.get_guild(int(ctx.guild_id))  # type: ignore[arg-type]
        role = guild.get_role(int(ctx.option("role", 0))) if guild else None
        if role is None:
            return CommandReply.error("Role not found.")

        embed = discord.Embed(title=f"🏷️ {role.name}", color=role.color)
        embed.add_field(name="ID", value=str(role.id), inline=True)
        embed.add_field(name="Color", value=str(role.color), inline=True)
        embed.add_field(name="Members", value=str(len(role.members)), inline=True)
        embed.add_field(name="Position", value=str(role.position), inline=True)
        embed.add_field(name="Managed", value="Yes" if role.managed else "No", inline=True)
        embed.add_field(name="Mentionable", value="Yes" if role.mentionable else "No", inline=True)
        embed.add_field(name="Created", value=_relative(role.created_at), inline=True)
        return CommandReply(embed=embed)

    async def handle_channelinfo(self, ctx: CommandContext) -> CommandReply:
        guild = self.bot.get_guild(int(ctx.guild_id))  # type: ignore[arg-type]
        channel_id = ctx.option("channel", ctx.channel_id)
        channel = guild.get_channel_or_thread(int(channel_id)) if guild and channel_id else None
        if channel is None:
            return CommandReply.error("Channel not found.")

        embed = discord.Embed(title=f"💬 #{channel.name}", color=discord.Color.blue())
        embed.add_field(name="ID", value=str(channel.id), inline=True)
        embed.add_field(name="Type", value=str(channel.type).replace("_", " ").title(), inline=True)
        embed.add_field(name="Created", value=_relative(channel.created_at), inline=True)
        category = getattr(channel, "category", None)
        if category is not None:
            embed.add_field(name="Category", value=category.name, inline=True)
        slowmode = getattr(channel, "slowmode_delay", 0)
        if slowmode:
            embed.add_field(name="Slowmode", value=f"{slowmode}s", inline=True)
        if isinstance(channel, discord.TextChannel):
            embed.add_field(name="Topic", value=channel.topic or "None", inline=False)
        return CommandReply(embed=embed)

    async def handle_invite(self, ctx: CommandContext) -> CommandReply:
        client_id = BotConfig.CLIENT_ID or (str(self.bot.application_id) if self.bot.application_id else "")
        if not client_id:
            return CommandReply.error("The invite link is not available (CLIENT_ID is not set).")
        url = discord.utils.oauth_url(
            client_id, permissions=INVITE_PERMISSIONS, scopes=("bot", "applications.commands")
        )
        logger.info(f"{ctx.user_tag} requested bot invite link")
        return CommandReply(content=f"🔗 **Invite the bot to your server:**\n{url}")

    # ==================== Slash commands ====================

    @app_commands.command(name="userinfo", description="Get information about a user")
    @app_commands.describe(user="The user to get info about (defaults to you)")
    async def userinfo(self, interaction: discord.Interaction, user: discord.User | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="avatar", description="View a user's avatar")
    @app_commands.describe(user="User to view avatar (defaults to you)")
    async def avatar(self, interaction: discord.Interaction, user: discord.User | None = None) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="roleinfo", description="Get detailed information about a role")
    @app_commands.guild_only()
    @app_commands.describe(role="Role to get info about")
    async def roleinfo(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="channelinfo", description="Get detailed information about a channel")
    @app_commands.guild_only()
    @app_commands.describe(channel="Channel to get info about (defaults to current)")
    async def channelinfo(
        self, interaction: discord.Interaction, channel: discord.abc.GuildChannel | None = None
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="invite", description="Get the bot invite link")
    async def invite(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(Info(bot))
