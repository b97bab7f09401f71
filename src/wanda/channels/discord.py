"""Discord channel adapter."""

from __future__ import annotations

import contextlib
import re
from collections.abc import Awaitable, Callable

import discord
from discord import app_commands
from discord.ext import commands
from loguru import logger

from wanda.app.bootstrap import AppContext
from wanda.channels.base import BaseChannel
from wanda.channels.keys import discord_conversation_key
from wanda.errors import ConfigurationError
from wanda.integrations.wanda_cli import OAUTH_PROVIDERS

EMBED_TITLE = "WANDA"
MAX_EMBED_LENGTH = 4096
MAX_CHOICES = 25


def conversation_key(channel: object | None, user_id: int | str) -> str:
    is_thread = isinstance(channel, discord.Thread)
    channel_id = getattr(channel, "id", None)
    return discord_conversation_key(channel_id, user_id, is_thread=is_thread)


def answer_embed(answer: str, *, title: str = EMBED_TITLE) -> discord.Embed:
    return discord.Embed(title=title, description=answer[:MAX_EMBED_LENGTH])


def strip_mentions(content: str, bot_id: int | None) -> str:
    if bot_id is None:
        return content.strip()
    return re.sub(rf"<@!?{bot_id}>", "", content).strip()


class DiscordChannel(BaseChannel):
    """Discord adapter based on discord.py slash commands and mentions."""

    name = "discord"

    def __init__(self, app: AppContext) -> None:
        super().__init__(app)
        settings = app.settings
        self._token = settings.discord_bot_token or ""
        self._guild_id = settings.discord_guild_id
        self._bot: commands.Bot | None = None

    async def start(self) -> None:
        if not self._token:
            raise ConfigurationError("Missing DISCORD_BOT_TOKEN")

        intents = discord.Intents.default()
        intents.messages = True
        intents.message_content = True
        intents.voice_states = True
        intents.reactions = True
        bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents, help_command=None)
        self._bot = bot
        self._register_commands(bot.tree)

        @bot.event
        async def on_ready() -> None:
            await self._sync_commands(bot)
            logger.info("discord.ready user={} id={}", str(bot.user), bot.user.id if bot.user else "<unknown>")

        @bot.event
        async def on_message(message: discord.Message) -> None:
            await self._on_message(message)

        @bot.event
        async def on_voice_state_update(
            member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
        ) -> None:
            self._on_voice_state_update(member, before, after)

        logger.info("discord.start providers={}", self.runtime.list_providers())
        async with bot:
            await bot.start(self._token)

    async def stop(self) -> None:
        if self._bot is None:
            return
        if not self._bot.is_closed():
            await self._bot.close()
        self._bot = None
        logger.info("discord.stopped")

    async def _sync_commands(self, bot: commands.Bot) -> None:
        if self._guild_id:
            guild = bot.get_guild(int(self._guild_id))
            if guild is not None:
                bot.tree.copy_global_to(guild=guild)
                synced = await bot.tree.sync(guild=guild)
                logger.info("discord.commands.synced guild_id={} count={}", self._guild_id, len(synced))
                return
            logger.warning("discord.commands.guild_missing guild_id={}", self._guild_id)
        synced = await bot.tree.sync()
        logger.info("discord.commands.synced scope=global count={}", len(synced))

    def _register_commands(self, tree: app_commands.CommandTree) -> None:  # noqa: C901
        provider_choices = [
            app_commands.Choice(name=name, value=name) for name in self.runtime.list_providers()[:MAX_CHOICES]
        ]
        oauth_choices = [app_commands.Choice(name=name, value=name) for name in OAUTH_PROVIDERS]

        @tree.command(name="ask", description="Ask WANDA")
        @app_commands.describe(question="Your question")
        async def ask(interaction: discord.Interaction, question: str) -> None:
            async def _run() -> None:
                answer = await self.commands.ask(
                    self._key(interaction),
                    question,
                    {"platform": "discord", "channelId": str(interaction.channel_id), "userId": str(interaction.user.id)},
                )
                await interaction.edit_original_response(embed=answer_embed(answer))
                reply = await interaction.original_response()
                with contextlib.suppress(discord.HTTPException):
                    await reply.add_reaction("✅")

            await self._respond(interaction, _run, defer=True)

        @tree.command(name="provider", description="Show or switch the provider")
        @app_commands.describe(name="Provider name")
        @app_commands.choices(name=provider_choices)
        async def provider(interaction: discord.Interaction, name: str | None = None) -> None:
            async def _run() -> None:
                await interaction.response.send_message(self.commands.provider(self._key(interaction), name))

            await self._respond(interaction, _run)

        @tree.command(name="model", description="Set the model for the current context")
        @app_commands.describe(name="Model name")
        async def model(interaction: discord.Interaction, name: str) -> None:
            async def _run() -> None:
                await interaction.response.send_message(self.commands.model(self._key(interaction), name))

            await self._respond(interaction, _run)

        @tree.command(name="status", description="Current runtime status")
        async def status(interaction: discord.Interaction) -> None:
            async def _run() -> None:
                text = self.commands.status(self._key(interaction))
                await interaction.response.send_message(embed=answer_embed(text, title="Runtime Status"))

            await self._respond(interaction, _run)

        @tree.command(name="reset", description="Reset the conversation context")
        async def reset(interaction: discord.Interaction) -> None:
            async def _run() -> None:
                await interaction.response.send_message(self.commands.reset(self._key(interaction)))

            await self._respond(interaction, _run)

        @tree.command(name="oauth_status", description="OAuth status of the wanda CLI")
        async def oauth_status(interaction: discord.Interaction) -> None:
            async def _run() -> None:
                text = await self.commands.oauth_status()
                await interaction.edit_original_response(embed=answer_embed(text, title="OAuth"))

            await self._respond(interaction, _run, defer=True)

        @tree.command(name="oauth_login", description="Start an OAuth login through the wanda CLI")
        @app_commands.describe(provider="OAuth provider")
        @app_commands.choices(provider=oauth_choices)
        async def oauth_login(interaction: discord.Interaction, provider: str) -> None:
            async def _run() -> None:
                await interaction.edit_original_response(content=await self.commands.oauth_login(provider))

            await self._respond(interaction, _run, defer=True)

        @tree.command(name="oauth_logout", description="OAuth logout through the wanda CLI")
        @app_commands.describe(provider="OAuth provider")
        @app_commands.choices(provider=oauth_choices)
        async def oauth_logout(interaction: discord.Interaction, provider: str) -> None:
            async def _run() -> None:
                await interaction.edit_original_response(content=await self.commands.oauth_logout(provider))

            await self._respond(interaction, _run, defer=True)

        @tree.command(name="vox_status", description="VOX bridge status")
        async def vox_status(interaction: discord.Interaction) -> None:
            async def _run() -> None:
                await interaction.response.send_message(self.commands.vox_status())

            await self._respond(interaction, _run)

    @staticmethod
    def _key(interaction: discord.Interaction) -> str:
        return conversation_key(interaction.channel, interaction.user.id)

    async def _respond(
        self,
        interaction: discord.Interaction,
        run: Callable[[], Awaitable[None]],
        *,
        defer: bool = False,
    ) -> None:
        command = interaction.command.name if interaction.command else "<unknown>"
        logger.debug(
            "discord.interaction command={} user_id={} channel_id={}",
            command,
            interaction.user.id,
            interaction.channel_id,
        )
        try:
            if defer:
                await interaction.response.defer()
            await run()
        except Exception as exc:
            logger.warning("discord.interaction.error command={} error={}", command, exc)
            message = f"Discord command error: {exc}"
            with contextlib.suppress(discord.HTTPException):
                if interaction.response.is_done():
                    await interaction.edit_original_response(content=message, embed=None)
                else:
                    await interaction.response.send_message(message, ephemeral=True)

    async def _is_reply_to_bot(self, message: discord.Message, bot_id: int) -> bool:
        reference = message.reference
        if reference is None or reference.message_id is None:
            return False
        resolved = reference.resolved
        if not isinstance(resolved, discord.Message):
            try:
                resolved = await message.channel.fetch_message(reference.message_id)
            except discord.HTTPException:
                return False
        return resolved.author.id == bot_id

    async def _on_message(self, message: discord.Message) -> None:
        if message.author.bot or self._bot is None or self._bot.user is None:
            return
        bot_user = self._bot.user
        if bot_user not in message.mentions and not await self._is_reply_to_bot(message, bot_user.id):
            return

        text = strip_mentions(message.content or "", bot_user.id)
        if not text:
            return

        key = conversation_key(message.channel, message.author.id)
        logger.info(
            "discord.inbound key={} sender_id={} length={}",
            key,
            message.author.id,
            len(text),
        )
        try:
            with contextlib.suppress(discord.HTTPException):
                await message.add_reaction("⏳")
            answer = await self.commands.ask(
                key,
                text,
                {
                    "platform": "discord",
                    "channelId": str(message.channel.id),
                    "userId": str(message.author.id),
                    "source": "mention",
                },
            )
            await message.reply(embed=answer_embed(answer))
            with contextlib.suppress(discord.HTTPException):
                await message.add_reaction("✅")
        except Exception as exc:
            logger.warning("discord.mention.error key={} error={}", key, exc)
            with contextlib.suppress(discord.HTTPException):
                await message.reply(f"Answer error: {exc}")

    @staticmethod
    def _on_voice_state_update(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState) -> None:
        if member.bot or before.channel == after.channel:
            return
        if after.channel is not None and before.channel is None:
            logger.info("discord.voice.joined user={} channel={}", member, after.channel.name)
        elif after.channel is None and before.channel is not None:
            logger.info("discord.voice.left user={} channel={}", member, before.channel.name)
        elif before.channel is not None and after.channel is not None:
            logger.info("discord.voice.moved user={} from={} to={}", member, before.channel.name, after.channel.name)
