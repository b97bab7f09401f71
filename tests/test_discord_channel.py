from __future__ import annotations

from types import SimpleNamespace

import pytest

from wanda.app.bootstrap import AppContext
from wanda.channels.discord import DiscordChannel, answer_embed, conversation_key, strip_mentions
from wanda.errors import ConfigurationError


class DummyMessage:
    def __init__(self, *, content: str, mentions: list[object], channel_id: int = 10, author_id: int = 7) -> None:
        self.content = content
        self.mentions = mentions
        self.reference = None
        self.author = SimpleNamespace(id=author_id, bot=False)
        self.channel = SimpleNamespace(id=channel_id)
        self.reactions: list[str] = []
        self.replies: list[object] = []

    async def add_reaction(self, emoji: str) -> None:
        self.reactions.append(emoji)

    async def reply(self, content: str | None = None, *, embed: object = None) -> None:
        self.replies.append(embed if embed is not None else content)


def _channel(app_context: AppContext) -> tuple[DiscordChannel, SimpleNamespace]:
    channel = DiscordChannel(app_context)
    bot_user = SimpleNamespace(id=99)
    channel._bot = SimpleNamespace(user=bot_user)  # type: ignore[assignment]
    return channel, bot_user


def test_strip_mentions() -> None:
    assert strip_mentions("<@99> hello <@!99>", 99) == "hello"
    assert strip_mentions("<@12> hello", 99) == "<@12> hello"
    assert strip_mentions("  hi ", None) == "hi"


def test_conversation_key_for_channels_and_dms() -> None:
    assert conversation_key(SimpleNamespace(id=5), 7) == "dc:5:main:7"
    assert conversation_key(None, 7) == "dc:dm:main:7"


def test_answer_embed_truncates_description() -> None:
    embed = answer_embed("y" * 5000)
    assert embed.title == "WANDA"
    assert len(embed.description) == 4096


@pytest.mark.asyncio
async def test_mention_is_answered_with_embed(app_context: AppContext) -> None:
    channel, bot_user = _channel(app_context)
    message = DummyMessage(content="<@99> wie geht's?", mentions=[bot_user])

    await channel._on_message(message)  # type: ignore[arg-type]

    assert message.reactions == ["⏳", "✅"]
    assert message.replies[0].description == "echo wie geht's?"
    assert app_context.runtime.status("dc:10:main:7").history_turns == 2


@pytest.mark.asyncio
async def test_message_without_mention_is_ignored(app_context: AppContext) -> None:
    channel, _ = _channel(app_context)
    message = DummyMessage(content="hello everyone", mentions=[])

    await channel._on_message(message)  # type: ignore[arg-type]

    assert message.replies == []
    assert message.reactions == []


@pytest.mark.asyncio
async def test_mention_error_is_reported(app_context: AppContext) -> None:
    async def _fail(_request) -> str:
        raise RuntimeError("quota exceeded")

    app_context.runtime._adapters["gemini"] = _fail
    channel, bot_user = _channel(app_context)
    message = DummyMessage(content="<@99> hi", mentions=[bot_user])

    await channel._on_message(message)  # type: ignore[arg-type]

    assert message.replies == ["Answer error: quota exceeded"]


@pytest.mark.asyncio
async def test_start_requires_token(app_context: AppContext) -> None:
    app_context.settings.discord_bot_token = None
    with pytest.raises(ConfigurationError, match="DISCORD_BOT_TOKEN"):
        await DiscordChannel(app_context).start()
