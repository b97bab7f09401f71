"""Chat front-ends and the command handling they share."""

from wanda.channels.base import BaseChannel
from wanda.channels.commands import ChannelCommands, format_oauth_status, format_status
from wanda.channels.keys import discord_conversation_key, telegram_conversation_key
from wanda.channels.voice import VoiceBridge, VoicePayload

__all__ = [
    "BaseChannel",
    "ChannelCommands",
    "VoiceBridge",
    "VoicePayload",
    "discord_conversation_key",
    "format_oauth_status",
    "format_status",
    "telegram_conversation_key",
]
