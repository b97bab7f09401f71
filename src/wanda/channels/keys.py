"""Conversation keys derived from platform identifiers."""

from __future__ import annotations

MAIN_THREAD = "main"


def telegram_conversation_key(chat_id: int | str, thread_id: int | str | None = None) -> str:
    """One session per chat and forum topic."""
    return f"tg:{chat_id}:{thread_id or MAIN_THREAD}"


def discord_conversation_key(
    channel_id: int | str | None,
    user_id: int | str,
    *,
    is_thread: bool = False,
) -> str:
    """One session per user in each channel or thread; DMs without a channel map to ``dm``."""
    thread_part = channel_id if is_thread and channel_id else MAIN_THREAD
    return f"dc:{channel_id or 'dm'}:{thread_part}:{user_id}"
