"""Telegram channel adapter."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, ClassVar
from urllib.parse import urlparse

from loguru import logger
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.constants import ChatAction, ParseMode
from telegram.error import BadRequest
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters
from telegramify_markdown import markdownify as md

from wanda.app.bootstrap import AppContext
from wanda.channels.base import BaseChannel
from wanda.channels.commands import HELP_TEXT
from wanda.channels.keys import telegram_conversation_key
from wanda.channels.utils import chunk_text
from wanda.channels.voice import VoicePayload
from wanda.errors import ConfigurationError

MAX_MESSAGE_LENGTH = 3500
TYPING_INTERVAL_SECONDS = 4


class WandaMessageFilter(filters.MessageFilter):
    GROUP_CHAT_TYPES: ClassVar[set[str]] = {"group", "supergroup"}

    def filter(self, message: Message) -> bool | dict[str, list[Any]] | None:
        text = message.text
        if not text or text.startswith("/"):
            return False

        if message.chat.type == "private":
            return True

        # Group chat: only answer when the bot is mentioned or replied to.
        if message.chat.type in self.GROUP_CHAT_TYPES:
            bot = message.get_bot()
            username = (bot.username or "").lower()
            if username and f"@{username}" in text.lower():
                return True
            reply_to = message.reply_to_message
            return bool(reply_to and reply_to.from_user and reply_to.from_user.id == bot.id)

        return False


def conversation_key(update: Update) -> str:
    chat = update.effective_chat
    message = update.effective_message
    thread_id = message.message_thread_id if message is not None else None
    return telegram_conversation_key(chat.id if chat is not None else "unknown", thread_id)


def _pairs(labels: list[tuple[str, str]], *, first_single: bool = False) -> list[list[InlineKeyboardButton]]:
    buttons = [InlineKeyboardButton(text, callback_data=data) for text, data in labels]
    rows: list[list[InlineKeyboardButton]] = []
    if first_single and buttons:
        rows.append([buttons.pop(0)])
    rows.extend(buttons[index : index + 2] for index in range(0, len(buttons), 2))
    return rows


class TelegramChannel(BaseChannel):
    """Telegram adapter using long polling mode."""

    name = "telegram"

    def __init__(self, app: AppContext) -> None:
        super().__init__(app)
        self._token = app.settings.telegram_bot_token or ""
        self._app: Application | None = None
        self._running = False
        self._typing_tasks: dict[str, asyncio.Task[None]] = {}
        self._typing_refs: dict[str, int] = {}

    async def start(self) -> None:
        if not self._token:
            raise ConfigurationError("Missing TELEGRAM_BOT_TOKEN")
        self._running = True
        self._app = Application.builder().token(self._token).build()
        for command, callback in (
            ("start", self._on_start),
            ("controls", self._on_controls),
            ("status", self._on_status),
            ("reset", self._on_reset),
            ("provider", self._on_provider),
            ("model", self._on_model),
            ("oauth_status", self._on_oauth_status),
            ("oauth_login", self._on_oauth_login),
            ("oauth_logout", self._on_oauth_logout),
            ("vox_status", self._on_vox_status),
        ):
            self._app.add_handler(CommandHandler(command, callback, block=False))
        self._app.add_handler(CallbackQueryHandler(self._on_callback))
        self._app.add_handler(MessageHandler(filters.VOICE, self._on_voice, block=False))
        self._app.add_handler(MessageHandler(filters.PHOTO, self._on_photo))
        self._app.add_handler(MessageHandler(filters.Document.ALL, self._on_document))
        self._app.add_handler(MessageHandler(WandaMessageFilter(), self._on_text, block=False))
        self._app.add_error_handler(self._on_error)
        await self._app.initialize()
        await self._app.start()
        updater = self._app.updater
        if updater is None:
            return
        await updater.start_polling(drop_pending_updates=True, allowed_updates=["message", "callback_query"])
        logger.info("telegram.channel.polling providers={}", self.runtime.list_providers())
        while self._running:
            await asyncio.sleep(0.5)

    async def stop(self) -> None:
        self._running = False
        for task in self._typing_tasks.values():
            task.cancel()
        self._typing_tasks.clear()
        self._typing_refs.clear()
        if self._app is None:
            return
        updater = self._app.updater
        if updater is not None and updater.running:
            await updater.stop()
        if self._app.running:
            await self._app.stop()
        await self._app.shutdown()
        self._app = None
        logger.info("telegram.channel.stopped")

    def provider_keyboard(self) -> InlineKeyboardMarkup:
        rows = _pairs([(name, f"set_provider:{name}") for name in self.runtime.list_providers()])
        rows.append([
            InlineKeyboardButton("Models", callback_data="show_models"),
            InlineKeyboardButton("Reset", callback_data="reset_chat"),
        ])
        return InlineKeyboardMarkup(rows)

    def model_keyboard(self, key: str) -> InlineKeyboardMarkup:
        session = self.runtime.get_session(key)
        models = self.runtime.list_models(session.provider_name)
        rows = _pairs([(model, f"set_model:{model}") for model in models], first_single=True)
        rows.append([InlineKeyboardButton("Providers", callback_data="show_providers")])
        return InlineKeyboardMarkup(rows)

    async def send_answer(self, message: Message, text: str) -> None:
        for chunk in chunk_text(text, limit=MAX_MESSAGE_LENGTH):
            try:
                await message.reply_text(md(chunk), parse_mode=ParseMode.MARKDOWN_V2)
            except BadRequest:
                await message.reply_text(chunk)

    async def _on_start(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text(HELP_TEXT)

    async def _on_controls(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text("Controls", reply_markup=self.provider_keyboard())

    async def _on_status(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text(self.commands.status(conversation_key(update)))

    async def _on_reset(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text(self.commands.reset(conversation_key(update)))

    async def _on_provider(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        name = context.args[0] if context.args else None
        try:
            reply = self.commands.provider(conversation_key(update), name)
        except Exception as exc:
            reply = f"Provider error: {exc}"
        await update.message.reply_text(reply)

    async def _on_model(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        name = context.args[0] if context.args else None
        try:
            reply = self.commands.model(conversation_key(update), name)
        except Exception as exc:
            reply = f"Model error: {exc}"
        await update.message.reply_text(reply)

    async def _on_oauth_status(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if message is None:
            return
        chat_id = str(message.chat_id)
        self._start_typing(chat_id)
        try:
            reply = await self.commands.oauth_status()
        except Exception as exc:
            reply = f"OAuth status error: {exc}"
        finally:
            self._stop_typing(chat_id)
        await message.reply_text(reply)

    async def _on_oauth_login(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._oauth_action(update, context, "login")

    async def _on_oauth_logout(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._oauth_action(update, context, "logout")

    async def _oauth_action(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: str) -> None:
        message = update.message
        if message is None:
            return
        if not context.args:
            await message.reply_text(self.commands.oauth_usage(action))
            return
        provider = context.args[0]
        if action == "login":
            await message.reply_text(
                f"Starting OAuth login for {provider}. The flow opens a browser on this host "
                "and can take up to 10 minutes."
            )
        chat_id = str(message.chat_id)
        self._start_typing(chat_id)
        try:
            if action == "login":
                reply = await self.commands.oauth_login(provider)
            else:
                reply = await self.commands.oauth_logout(provider)
        except Exception as exc:
            reply = f"OAuth {action} error: {exc}"
        finally:
            self._stop_typing(chat_id)
        await message.reply_text(reply)

    async def _on_vox_status(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text(self.commands.vox_status())

    async def _on_callback(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return
        key = conversation_key(update)
        data = query.data or ""
        try:
            if data.startswith("set_provider:"):
                self.runtime.set_provider(key, data.removeprefix("set_provider:"))
                await query.edit_message_text("Provider switched.", reply_markup=self.provider_keyboard())
            elif data.startswith("set_model:"):
                self.runtime.set_model(key, data.removeprefix("set_model:"))
                await query.edit_message_text("Model switched.", reply_markup=self.model_keyboard(key))
            elif data == "show_models":
                await query.edit_message_text("Model selection", reply_markup=self.model_keyboard(key))
            elif data == "show_providers":
                await query.edit_message_text("Provider selection", reply_markup=self.provider_keyboard())
            elif data == "reset_chat":
                self.runtime.reset(key)
                await query.edit_message_text("Context reset.", reply_markup=self.provider_keyboard())
            await query.answer()
        except Exception as exc:
            logger.warning("telegram.callback.error key={} data={} error={}", key, data, exc)
            await query.answer(text=f"Error: {exc}")

    async def _on_voice(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if message is None or message.voice is None or update.effective_user is None:
            return
        voice = message.voice
        chat_id = str(message.chat_id)
        user_id = str(update.effective_user.id)
        try:
            telegram_file = await context.bot.get_file(voice.file_id)
            file_url = telegram_file.file_path or ""
            payload = VoicePayload(
                platform="telegram",
                chat_id=chat_id,
                user_id=user_id,
                file_id=voice.file_id,
                duration=voice.duration,
                mime_type=voice.mime_type or "",
                file_url=file_url,
            )

            async def download(path: Path) -> None:
                await telegram_file.download_to_drive(custom_path=path)

            self._start_typing(chat_id)
            try:
                reply = await self.voice.handle(
                    conversation_key(update),
                    payload,
                    download,
                    suffix=Path(urlparse(file_url).path).suffix or ".ogg",
                    metadata={"chatId": chat_id, "userId": user_id, "source": "telegram_voice"},
                )
            finally:
                self._stop_typing(chat_id)
        except Exception as exc:
            logger.exception("telegram.voice.error chat_id={}", chat_id)
            reply = f"Voice error: {exc}"
        await self.send_answer(message, reply)

    async def _on_photo(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text("Image received. No vision pipeline is attached yet.")

    async def _on_document(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None:
            return
        await update.message.reply_text("File received. No analysis pipeline is attached yet.")

    async def _on_text(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if message is None or update.effective_user is None:
            return
        text = message.text or ""
        chat_id = str(message.chat_id)
        key = conversation_key(update)
        logger.info(
            "telegram.channel.inbound key={} sender_id={} length={}",
            key,
            update.effective_user.id,
            len(text),
        )
        self._start_typing(chat_id)
        try:
            answer = await self.commands.ask(
                key, text, {"chatId": chat_id, "userId": str(update.effective_user.id)}
            )
        except Exception as exc:
            logger.warning("telegram.ask.error key={} error={}", key, exc)
            answer = f"Answer error: {exc}"
        finally:
            self._stop_typing(chat_id)
        await self.send_answer(message, answer)

    async def _on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        update_id = getattr(update, "update_id", None)
        logger.opt(exception=context.error).error("telegram.channel.error update_id={}", update_id)

    def _start_typing(self, chat_id: str) -> None:
        # One indicator per chat, kept alive while any handler in that chat is busy.
        self._typing_refs[chat_id] = self._typing_refs.get(chat_id, 0) + 1
        if chat_id not in self._typing_tasks:
            self._typing_tasks[chat_id] = asyncio.create_task(self._typing_loop(chat_id))

    def _stop_typing(self, chat_id: str) -> None:
        remaining = self._typing_refs.get(chat_id, 0) - 1
        if remaining > 0:
            self._typing_refs[chat_id] = remaining
            return
        self._typing_refs.pop(chat_id, None)
        task = self._typing_tasks.pop(chat_id, None)
        if task is not None:
            task.cancel()

    async def _typing_loop(self, chat_id: str) -> None:
        try:
            while self._app is not None:
                await self._app.bot.send_chat_action(chat_id=int(chat_id), action=ChatAction.TYPING)
                await asyncio.sleep(TYPING_INTERVAL_SECONDS)
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("telegram.channel.typing_loop.error chat_id={}", chat_id)
            return
