from __future__ import annotations

import asyncio
from types import SimpleNamespace

import discord
import pytest

from devbadge.bot.core.commands import CommandContext, CommandRegistry, CommandReply, context_from_message
from devbadge.shared.validation import ConfigValidationError


class _Handler:
    def __init__(self, reply: CommandReply | None = None, error: Exception | None = None) -> None:
        self.calls: list[CommandContext] = []
        self.reply = reply or CommandReply(content="ok")
        self.error = error

    async def __call__(self, ctx: CommandContext) -> CommandReply:
        self.calls.append(ctx)
        if self.error is not None:
            raise self.error
        return self.reply


def _make_ctx(name: str, subcommand: str | None = None, **kwargs) -> CommandContext:
    kwargs.setdefault("guild_id", "1")
    return CommandContext(name=name, subcommand=subcommand, user_id="42", user_tag="tester", **kwargs)


def test_dispatch_runs_handler() -> None:
    registry = CommandRegistry()
    handler = _Handler()
    registry.register("ping", handler)

    reply = asyncio.run(registry.dispatch(_make_ctx("ping")))
    assert reply.content == "ok"
    assert len(handler.calls) == 1


def test_disabled_command_is_refused_without_running_handler() -> None:
    registry = CommandRegistry(is_disabled=lambda name: name == "tracking")
    handler = _Handler()
    registry.register("tracking toggle", handler, permission="administrator")

    reply = asyncio.run(
        registry.dispatch(_make_ctx("tracking", "toggle", permissions=frozenset({"administrator"})))
    )
    assert reply.content == "❌ This command is currently disabled."
    assert handler.calls == []


def test_missing_permission_is_refused_without_running_handler() -> None:
    registry = CommandRegistry()
    handler = _Handler()
    registry.register("twitch-notify add", handler, permission="manage_guild", guild_only=True)

    reply = asyncio.run(
        registry.dispatch(_make_ctx("twitch-notify", "add", permissions=frozenset({"send_messages"})))
    )
    assert reply.content == '❌ You need the "Manage Server" permission to use this command.'
    assert reply.ephemeral is True
    assert handler.calls == []


def test_administrator_implies_every_permission() -> None:
    registry = CommandRegistry()
    handler = _Handler()
    registry.register("translate-setup", handler, permission="manage_guild")

    asyncio.run(registry.dispatch(_make_ctx("translate-setup", permissions=frozenset({"administrator"}))))
    assert len(handler.calls) == 1


def test_guild_only_command_in_dm_is_refused() -> None:
    registry = CommandRegistry()
    handler = _Handler()
    registry.register("tracking status", handler, guild_only=True)

    reply = asyncio.run(registry.dispatch(_make_ctx("tracking", "status", guild_id=None)))
    assert reply.content == "❌ This command can only be used in a server."
    assert handler.calls == []


def test_handler_errors_become_error_replies() -> None:
    registry = CommandRegistry()
    registry.register("broken", _Handler(error=RuntimeError("boom")))
    registry.register("invalid", _Handler(error=ConfigValidationError("Invalid channel id: 'x'")))

    broken = asyncio.run(registry.dispatch(_make_ctx("broken")))
    assert broken.content == "❌ An error occurred while executing this command."
    invalid = asyncio.run(registry.dispatch(_make_ctx("invalid")))
    assert invalid.content == "❌ Invalid channel id: 'x'"


def test_unknown_command() -> None:
    reply = asyncio.run(CommandRegistry().dispatch(_make_ctx("nope")))
    assert reply.content == "❌ Unknown command: nope"


def test_duplicate_registration_and_unregister() -> None:
    registry = CommandRegistry()
    registry.register("Ping", _Handler())

    with pytest.raises(ValueError):
        registry.register("ping", _Handler())
    assert "PING" in registry
    registry.unregister("ping")
    assert len(registry) == 0


def test_option_default_for_missing_or_none() -> None:
    ctx = _make_ctx("translate", options={"text": "hola", "from": None})
    assert ctx.option("text") == "hola"
    assert ctx.option("from", "auto") == "auto"
    assert ctx.option("target-language", "en") == "en"


def test_moderator_role_covers_moderation_permissions_only() -> None:
    registry = CommandRegistry()
    kick = _Handler()
    setup = _Handler()
    registry.register("kick", kick, permission="kick_members", guild_only=True)
    registry.register("translate-setup", setup, permission="manage_guild", guild_only=True)
    moderator = frozenset({"moderator"})

    asyncio.run(registry.dispatch(_make_ctx("kick", permissions=moderator)))
    reply = asyncio.run(registry.dispatch(_make_ctx("translate-setup", permissions=moderator)))

    assert len(kick.calls) == 1
    assert setup.calls == []
    assert reply.content == '❌ You need the "Manage Server" permission to use this command.'


def test_prefix_context_marks_moderator_roles() -> None:
    def message(*role_names: str) -> SimpleNamespace:
        author = SimpleNamespace(
            id=42,
            guild_permissions=discord.Permissions(send_messages=True),
            roles=[SimpleNamespace(name=name) for name in ("@everyone", *role_names)],
        )
        return SimpleNamespace(author=author, guild=SimpleNamespace(id=1, name="Test"), channel=SimpleNamespace(id=5))

    staff = context_from_message(message("Staff"), "purge", [])  # type: ignore[arg-type]
    member = context_from_message(message("Gamer"), "purge", [])  # type: ignore[arg-type]

    assert staff.permissions == frozenset({"send_messages", "moderator"})
    assert staff.has_permission("manage_messages") is True
    assert member.has_permission("manage_messages") is False
