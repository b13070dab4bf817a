"""Auto-translation of configured channels and the /translate command"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from devbadge.bot.config import BotConfig
from devbadge.bot.core.commands import CommandContext, CommandReply, run_interaction
from devbadge.bot.core.formatting import truncate
from devbadge.bot.core.translator import Translation, TranslationError, Translator
from devbadge.shared.models.translation_config import DEFAULT_LANGUAGE, TranslationConfig
from devbadge.shared.validation import normalize_language_code

if TYPE_CHECKING:
    from devbadge.bot.bot import DevBadgeBot

logger = logging.getLogger("discord_bot.translation")

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"
NOT_CONFIGURED = "Translation is not configured. Please add `OPENROUTER_API_KEY` to your .env file."
MIN_MESSAGE_LENGTH = 2
# Discord message/embed description limits
MAX_REPLY_LENGTH = 2000
MAX_EMBED_LENGTH = 4096

SETUP_COMMANDS = (
    "translate-setup",
    "translate-config",
    "translate-output-channel",
    "translate-disable",
    "translate-list",
    "translate-status",
)


def _mode_label(mode: str) -> str:
    return {"reply": "Reply to message", "embed": "Embed", "thread": "Thread"}.get(mode, mode)


class AutoTranslate(commands.Cog, name="Translation"):
    def __init__(self, bot: DevBadgeBot):
        self.bot = bot
        self.translator: Translator | None = None

    async def cog_load(self) -> None:
        if BotConfig.OPENROUTER_API_KEY:
            self.translator = Translator(
                BotConfig.OPENROUTER_API_KEY,
                model=BotConfig.OPENROUTER_MODEL,
                base_url=BotConfig.OPENROUTER_BASE_URL,
            )
        else:
            logger.warning("OPENROUTER_API_KEY not set; translation is disabled")

        registry = self.bot.registry
        for name in SETUP_COMMANDS:
            handler = getattr(self, "handle_" + name.replace("translate-", "").replace("-", "_"))
            registry.register(name, handler, permission="manage_guild", guild_only=True)
        registry.register("translate", self.handle_translate, defer=True)

    async def cog_unload(self) -> None:
        for name in (*SETUP_COMMANDS, "translate"):
            self.bot.registry.unregister(name)

    # ==================== Handlers ====================

    async def handle_setup(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        language = ctx.option("target-language")
        config, added = self.bot.translation_configs.enable_channel(ctx.guild_id, channel_id)  # type: ignore[arg-type]
        if language:
            config, _ = self.bot.translation_configs.add_language(ctx.guild_id, language)  # type: ignore[arg-type]

        logger.info(f"{ctx.user_tag} enabled auto-translation in {channel_id} ({ctx.guild_name})")
        state = "enabled" if added else "already enabled"
        tip = "" if self.translator else f"\n⚠️ {NOT_CONFIGURED}"
        return CommandReply.success(
            f"Auto-translation {state} for <#{channel_id}>\n"
            f"🌐 Target languages: {', '.join(config.target_languages)}\n"
            f"📋 Display mode: {_mode_label(config.display_mode)}{tip}"
        )

    async def handle_config(self, ctx: CommandContext) -> CommandReply:
        display_mode = ctx.option("display-mode")
        language = ctx.option("default-language")
        config = self.bot.translation_configs.update(ctx.guild_id, display_mode=display_mode)  # type: ignore[arg-type]
        if language:
            code = normalize_language_code(language)
            # The default language moves to the front; the rest are kept
            languages = [code] + [lang for lang in config.target_languages if lang != code]
            config = self.bot.translation_configs.update(ctx.guild_id, target_languages=languages)  # type: ignore[arg-type]
        return CommandReply.success(
            "Translation settings updated\n"
            f"📋 Display mode: {_mode_label(config.display_mode)}\n"
            f"🌐 Target languages: {', '.join(config.target_languages)}"
        )

    async def handle_output_channel(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        self.bot.translation_configs.update(ctx.guild_id, output_channel_id=channel_id)  # type: ignore[arg-type]
        return CommandReply.success(f"Translations will now be sent to <#{channel_id}>")

    async def handle_disable(self, ctx: CommandContext) -> CommandReply:
        channel_id = ctx.option("channel")
        _, removed = self.bot.translation_configs.disable_channel(ctx.guild_id, channel_id)  # type: ignore[arg-type]
        if not removed:
            return CommandReply.error(f"Auto-translation is not enabled in <#{channel_id}>.")
        logger.info(f"{ctx.user_tag} disabled auto-translation in {channel_id} ({ctx.guild_name})")
        return CommandReply.success(f"Auto-translation disabled for <#{channel_id}>")

    async def handle_list(self, ctx: CommandContext) -> CommandReply:
        config = self.bot.translation_configs.get(ctx.guild_id)  # type: ignore[arg-type]
        if not config.channels:
            return CommandReply(content="📭 No channels have auto-translation enabled.")
        channels = "\n".join(f"• <#{c}>" for c in config.channels)
        return CommandReply(content=f"🌐 **Auto-translation channels**\n{channels}\nTotal: {len(config.channels)}")

    async def handle_status(self, ctx: CommandContext) -> CommandReply:
        config = self.bot.translation_configs.get(ctx.guild_id)  # type: ignore[arg-type]
        stats = self.bot.translation_stats.get(ctx.guild_id)  # type: ignore[arg-type]
        channels = ", ".join(f"<#{c}>" for c in config.channels) or "None"
        output = f"<#{config.output_channel_id}>" if config.output_channel_id else "Same channel"
        service = "✅ Available" if self.translator else "❌ Not configured"
        return CommandReply(
            content=(
                f"🌐 **Translation Status for {ctx.guild_name}**\n{DIVIDER}\n"
                f"🔌 **Service:** {service}\n"
                f"📢 **Channels:** {channels}\n"
                f"📋 **Display Mode:** {_mode_label(config.display_mode)}\n"
                f"🎯 **Target Languages:** {', '.join(config.target_languages)}\n"
                f"📤 **Output Channel:** {output}\n"
                f"📊 **Translations:** {stats.total}"
            )
        )

    async def handle_translate(self, ctx: CommandContext) -> CommandReply:
        if self.translator is None:
            return CommandReply.error(NOT_CONFIGURED)

        text = str(ctx.option("text", "")).strip()
        if not text:
            return CommandReply.error("Please provide some text to translate.")
        target = normalize_language_code(ctx.option("to") or DEFAULT_LANGUAGE)
        source = ctx.option("from")
        source = normalize_language_code(source) if source else None

        try:
            result = await self.translator.translate(text, target, source)
        except TranslationError as e:
            logger.error(f"Manual translation failed for {ctx.user_tag}: {e}")
            return CommandReply.error("Translation failed. Please try again later.")

        if ctx.guild_id:
            self.bot.translation_stats.record(ctx.guild_id, result.source_language, target, ctx.channel_id)  # type: ignore[arg-type]
        embed = discord.Embed(
            title=f"🌐 {result.source_language} → {target}",
            description=truncate(result.text, MAX_EMBED_LENGTH),
            color=discord.Color.blurple(),
        )
        embed.add_field(name="Original", value=truncate(text, 1024), inline=False)
        return CommandReply(embed=embed, ephemeral=False)

    # ==================== Auto-translation ====================

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if self.translator is None or message.author.bot or message.guild is None:
            return
        content = message.content.strip()
        if len(content) < MIN_MESSAGE_LENGTH:
            return
        prefix = BotConfig.COMMAND_PREFIX
        if prefix and content.startswith(prefix):
            return

        config = self.bot.translation_configs.get(message.guild.id)
        if str(message.channel.id) not in config.channels:
            return

        thread: discord.Thread | None = None
        for target in config.target_languages:
            try:
                result = await self.translator.translate(content, target)
            except TranslationError as e:
                logger.error(f"Auto-translation to {target} failed in {message.channel.id}: {e}")
                continue
            if result.source_language == target:
                continue

            try:
                if thread is None and self.uses_thread(message, config):
                    thread = await self.translation_thread(message)
                await self.deliver(message, config, result, thread)
            except discord.HTTPException as e:
                logger.error(f"Failed to send translation to {target}: {e}")
                continue
            self.bot.translation_stats.record(message.guild.id, result.source_language, target, message.channel.id)

    @staticmethod
    def uses_thread(message: discord.Message, config: TranslationConfig) -> bool:
        return config.display_mode == "thread" and isinstance(message.channel, discord.TextChannel)

    @staticmethod
    async def translation_thread(message: discord.Message) -> discord.Thread:
        """One thread per message; every target language posts into it"""
        if message.thread is not None:
            return message.thread
        return await message.create_thread(name=truncate(f"Translation: {message.content}", 100))

    async def deliver(
        self,
        message: discord.Message,
        config: TranslationConfig,
        result: Translation,
        thread: discord.Thread | None = None,
    ) -> None:
        header = f"🌐 **{result.source_language} → {result.target_language}**"
        output = None
        if config.output_channel_id:
            output = self.bot.get_channel(int(config.output_channel_id))

        if self.uses_thread(message, config):
            if thread is None:
                thread = await self.translation_thread(message)
            await self.bot.rate_limiter.safe_send_message(
                thread, content=truncate(f"{header}\n{result.text}", MAX_REPLY_LENGTH)
            )
            return

        if config.display_mode == "embed":
            embed = discord.Embed(
                description=truncate(result.text, MAX_EMBED_LENGTH),
                color=discord.Color.blurple(),
                timestamp=message.created_at,
            )
            embed.set_author(name=message.author.display_name, icon_url=message.author.display_avatar.url)
            embed.set_footer(text=f"{result.source_language} → {result.target_language}")
            if isinstance(output, discord.abc.Messageable):
                embed.add_field(name="Original", value=f"[Jump to message]({message.jump_url})", inline=False)
                await self.bot.rate_limiter.safe_send_message(output, embed=embed)
            else:
                await message.reply(embed=embed, mention_author=False)
            return

        text = truncate(f"{header}\n{result.text}", MAX_REPLY_LENGTH)
        if isinstance(output, discord.abc.Messageable):
            await self.bot.rate_limiter.safe_send_message(
                output, content=truncate(f"{header} ({message.jump_url})\n{result.text}", MAX_REPLY_LENGTH)
            )
        else:
            await message.reply(content=text, mention_author=False)

    # ==================== Slash commands ====================

    @app_commands.command(name="translate-setup", description="Enable auto-translation for a channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.rename(target_language="target-language")
    @app_commands.describe(
        channel="Channel to enable auto-translation in",
        target_language="Target language code (e.g., en, es, de, fr, ja)",
    )
    async def translate_setup(
        self, interaction: discord.Interaction, channel: discord.TextChannel, target_language: str | None = None
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate-config", description="Configure translation settings for this server")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.rename(display_mode="display-mode", default_language="default-language")
    @app_commands.describe(
        display_mode="How to display translations",
        default_language="Default target language (e.g., en, es, de, fr)",
    )
    @app_commands.choices(
        display_mode=[
            app_commands.Choice(name="Reply to message", value="reply"),
            app_commands.Choice(name="Embed", value="embed"),
            app_commands.Choice(name="Thread", value="thread"),
        ]
    )
    async def translate_config(
        self, interaction: discord.Interaction, display_mode: str, default_language: str | None = None
    ) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate-output-channel", description="Set the channel where translations will be sent")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(channel="Channel to send translations to")
    async def translate_output_channel(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate-disable", description="Disable auto-translation for a channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(channel="Channel to disable auto-translation in")
    async def translate_disable(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate-list", description="List all channels with auto-translation enabled")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def translate_list(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate-status", description="View current translation settings and enabled channels")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def translate_status(self, interaction: discord.Interaction) -> None:
        await run_interaction(self.bot.registry, interaction)

    @app_commands.command(name="translate", description="Manually translate text")
    @app_commands.rename(from_="from")
    @app_commands.describe(
        text="Text to translate",
        to="Target language (e.g., en, es, de, fr, ja)",
        from_="Source language (auto-detect if not specified)",
    )
    async def translate(
        self, interaction: discord.Interaction, text: str, to: str | None = None, from_: str | None = None
    ) -> None:
        await run_interaction(self.bot.registry, interaction)


async def setup(bot: DevBadgeBot) -> None:
    await bot.add_cog(AutoTranslate(bot))
