"""Voice message handling: vox transcription with webhook fallback."""

from __future__ import annotations

import tempfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

import httpx
from loguru import logger

from wanda.app.runtime import ConversationRuntime
from wanda.config import Settings
from wanda.integrations.vox_cli import VoxCli
from wanda.types import Metadata

WEBHOOK_TIMEOUT_SECONDS = 30.0

Downloader: TypeAlias = Callable[[Path], Awaitable[None]]


@dataclass(frozen=True)
class VoicePayload:
    """Voice message reference forwarded to the STT webhook."""

    platform: str
    chat_id: str
    user_id: str
    file_id: str
    duration: int | None
    mime_type: str
    file_url: str

    def to_json(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "chatId": self.chat_id,
            "userId": self.user_id,
            "fileId": self.file_id,
            "duration": self.duration,
            "mimeType": self.mime_type,
            "fileUrl": self.file_url,
        }


class VoiceBridge:
    def __init__(
        self,
        settings: Settings,
        vox_cli: VoxCli,
        runtime: ConversationRuntime,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.vox_cli = vox_cli
        self.runtime = runtime
        self._client = client

    @property
    def mode(self) -> str:
        return self.settings.vox_stt_mode

    def status_text(self) -> str:
        return "\n".join([
            "VOX Status",
            f"VOX CLI: {'found' if self.vox_cli.is_available() else 'missing'}",
            f"VOX_STT_MODE: {self.mode}",
            f"VOX_STT_WEBHOOK_URL: {self.settings.vox_stt_webhook_url or '(unset)'}",
            f"VOX_TRANSCRIBE_MODEL: {self.settings.vox_transcribe_model or '(default)'}",
        ])

    async def forward_to_webhook(self, payload: VoicePayload) -> bool:
        """POST the payload to the configured webhook; ``False`` when none is set."""
        url = self.settings.vox_stt_webhook_url
        if not url:
            return False
        client = self._client or httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS)
        try:
            response = await client.post(url, json=payload.to_json())
            response.raise_for_status()
        finally:
            if client is not self._client:
                await client.aclose()
        logger.info("voice.webhook.forwarded platform={} chat_id={}", payload.platform, payload.chat_id)
        return True

    async def handle(
        self,
        key: str,
        payload: VoicePayload,
        download: Downloader,
        *,
        suffix: str = ".ogg",
        metadata: Metadata | None = None,
    ) -> str:
        """Transcribe and answer a voice message, returning the reply text."""
        if self.mode == "cli":
            if not self.vox_cli.is_available():
                return "VOX CLI not found. Set VOX_CLI_BIN or use VOX_STT_MODE=webhook."
            try:
                return await self._transcribe_and_ask(key, download, suffix=suffix, metadata=metadata)
            except Exception as exc:
                logger.warning("voice.cli.error key={} error={}", key, exc)
                if await self.forward_to_webhook(payload):
                    return f"VOX CLI error ({exc}). The voice message was forwarded to the webhook fallback."
                raise

        if not await self.forward_to_webhook(payload):
            return "Voice received. Set VOX_STT_MODE=cli with VOX_CLI_BIN, or VOX_STT_WEBHOOK_URL, for transcription."
        return "Voice received and handed to the STT pipeline."

    async def _transcribe_and_ask(
        self,
        key: str,
        download: Downloader,
        *,
        suffix: str,
        metadata: Metadata | None,
    ) -> str:
        with tempfile.TemporaryDirectory(prefix="wanda_voice_") as workdir:
            audio_path = Path(workdir) / f"voice{suffix}"
            await download(audio_path)
            transcription = await self.vox_cli.transcribe(audio_path, model=self.settings.vox_transcribe_model)
        transcript = transcription.transcript.strip()
        logger.debug("voice.transcribed key={} length={}", key, len(transcript))
        answer = await self.runtime.ask(key, transcript, metadata)
        return f"🎙 {transcript}\n\n{answer}"
