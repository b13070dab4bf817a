"""Command dispatch shared by slash and prefix commands.

Every command is a plain async handler ``(CommandContext) -> CommandReply``
registered by name. The registry, not the handler, checks whether the
command is disabled, whether it needs a guild and whether the caller holds
the required permission. Handler exceptions become an error reply.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import discord

from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger("discord_bot.commands")

PERMISSION_LABELS = {
    "administrator": "Administrator",
    "manage_guild": "Manage Server",
    "manage_channels": "Manage Channels",
    "manage_messages": "Manage Messages",
    "kick_members": "Kick Members",
    "ban_members": "Ban Members",
    "moderate_members": "Moderate Members",
}

# Members with one of these roles may use moderation commands without the permission itself
MODERATOR_ROLE_NAMES = frozenset({"moderator", "mod", "admin", "administrator", "staff", "helper"})
MODERATOR_PERMISSIONS = frozenset(
    {"manage_messages", "manage_channels", "kick_members", "ban_members", "moderate_members"}
)


@dataclass(frozen=True)
class CommandContext:
    name: str
    user_id: str
    user_tag: str
    guild_id: str | None = None
    guild_name: str | None = None
    channel_id: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    permissions: frozenset[str] = frozenset()
    subcommand: str | None = None

    @property
    def key(self) -> str:
        return f"{self.name} {self.subcommand}" if self.subcommand else self.name

    def option(self, name: str, default: Any = None) -> Any:
        value = self.options.get(name)
        return default if value is None else value

    def has_permission(self, permission: str) -> bool:
        if "administrator" in self.permissions or permission in self.permissions:
            return True
        return "moderator" in self.permissions and permission in MODERATOR_PERMISSIONS


@dataclass
class CommandReply:
    content: str | None = None
    embed: discord.Embed | None = None
    ephemeral: bool = True

    @classmethod
    def success(cls, text: str, *, ephemeral: bool = True) -> CommandReply:
        return cls(content=f"✅ {text}", ephemeral=ephemeral)

    @classmethod
    def error(cls, text: str) -> CommandReply:
        return cls(content=f"❌ {text}", ephemeral=True)


Handler = Callable[[CommandContext], Awaitable[CommandReply]]


@dataclass(frozen=True)
class RegisteredCommand:
    name: str
    handler: Handler
    permission: str | None = None
    guild_only: bool = False
    description: str = ""
    defer: bool = False
    private: bool = False


class CommandRegistry:
    """Maps command names (``"ping"``, ``"tracking toggle"``) to handlers."""

    def __init__(self, is_disabled: Callable[[str], bool] | None = None) -> None:
        self._commands: dict[str, RegisteredCommand] = {}
        self._is_disabled = is_disabled or (lambda name: False)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def register(
        self,
        name: str,
        handler: Handler,
        *,
        permission: str | None = None,
        guild_only: bool = False,
        description: str = "",
        defer: bool = False,
        private: bool = False,
    ) -> None:
        """*defer* acknowledges slow commands before running them; *private* keeps that acknowledgement ephemeral."""
        key = name.lower()
        if key in self._commands:
            raise ValueError(f"Command '{key}' is already registered")
        self._commands[key] = RegisteredCommand(key, handler, permission, guild_only, description, defer, private)

    def unregister(self, name: str) -> None:
        self._commands.pop(name.lower(), None)

    def command(self, name: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.register(name, handler, **kwargs)
            return handler

        return decorator

    def get(self, name: str) -> RegisteredCommand | None:
        return self._commands.get(name.lower())

    def commands(self) -> Iterable[RegisteredCommand]:
        return self._commands.values()

    async def dispatch(self, ctx: CommandContext) -> CommandReply:
        registered = self.get(ctx.key)
        if registered is None:
            logger.warning(f"No handler for command '{ctx.key}'")
            return CommandReply.error(f"Unknown command: {ctx.key}")

        if self._is_disabled(ctx.name):
            logger.info(f"{ctx.user_tag} tried disabled command '{ctx.name}'")
            return CommandReply.error("This command is currently disabled.")

        if registered.guild_only and ctx.guild_id is None:
            return CommandReply.error("This command can only be used in a server.")

        if registered.permission and not ctx.has_permission(registered.permission):
            label = PERMISSION_LABELS.get(registered.permission, registered.permission)
            return CommandReply.error(f'You need the "{label}" permission to use this command.')

        try:
            reply = await registered.handler(ctx)
        except ConfigValidationError as e:
            return CommandReply.error(str(e))
        except Exception as e:
            logger.exception(f"Error executing '{ctx.key}' for {ctx.user_tag}: {e}")
            return CommandReply.error("An error occurred while executing this command.")

        logger.info(f"{ctx.user_tag} executed {ctx.key} command")
        return reply


def _option_value(value: Any) -> Any:
    # Channels, roles and users are passed to handlers as id strings
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if hasattr(value, "id"):
        return str(value.id)
    return value


def _permission_names(permissions: discord.Permissions | None, roles: Iterable[Any] = ()) -> frozenset[str]:
    if permissions is None:
        return frozenset()
    names = {name for name, granted in permissions if granted}
    if any(role.name.lower() in MODERATOR_ROLE_NAMES for role in roles):
        names.add("moderator")
    return frozenset(names)


def context_from_interaction(interaction: discord.Interaction) -> CommandContext:
    command = interaction.command
    parent = getattr(command, "parent", None)
    if parent is not None:
        name, subcommand = parent.name, command.name  # type: ignore[union-attr]
    else:
        name, subcommand = (command.name if command else ""), None

    options = {key: _option_value(value) for key, value in interaction.namespace}
    return CommandContext(
        name=name,
        subcommand=subcommand,
        user_id=str(interaction.user.id),
        user_tag=str(interaction.user),
        guild_id=str(interaction.guild_id) if interaction.guild_id else None,
        guild_name=interaction.guild.name if interaction.guild else None,
        channel_id=str(interaction.channel_id) if interaction.channel_id else None,
        options=options,
        permissions=_permission_names(
            interaction.permissions if interaction.guild_id else None,
            getattr(interaction.user, "roles", ()),
        ),
    )


def context_from_message(message: discord.Message, name: str, args: list[str]) -> CommandContext:
    author = message.author
    permissions = getattr(author, "guild_permissions", None)
    return CommandContext(
        name=name,
        user_id=str(author.id),
        user_tag=str(author),
        guild_id=str(message.guild.id) if message.guild else None,
        guild_name=message.guild.name if message.guild else None,
        channel_id=str(message.channel.id),
        options={"args": args},
        permissions=_permission_names(permissions, getattr(author, "roles", ())),
    )


async def respond(interaction: discord.Interaction, reply: CommandReply) -> None:
    kwargs: dict[str, Any] = {"content": reply.content, "ephemeral": reply.ephemeral}
    if reply.embed is not None:
        kwargs["embed"] = reply.embed
    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


async def run_interaction(registry: CommandRegistry, interaction: discord.Interaction) -> None:
    """Dispatch a slash command interaction and send the reply"""
    ctx = context_from_interaction(interaction)
    registered = registry.get(ctx.key)
    if registered and registered.defer:
        await interaction.response.defer(ephemeral=registered.private, thinking=True)
    reply = await registry.dispatch(ctx)
    try:
        await respond(interaction, reply)
    except discord.HTTPException as e:
        logger.error(f"Failed to reply to '{ctx.key}': {e}")
