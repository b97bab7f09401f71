"""Platform-independent chat command handlers returning display text."""

from __future__ import annotations

from wanda.app.runtime import ConversationRuntime, SessionStatus
from wanda.channels.utils import tail_lines
from wanda.channels.voice import VoiceBridge
from wanda.integrations.wanda_cli import OAUTH_PROVIDERS, WandaCli
from wanda.parsers import AuthStatus
from wanda.types import Metadata

HELP_TEXT = (
    "WANDA online. Commands: /controls, /provider, /model, /status, /reset, "
    "/oauth_status, /oauth_login, /oauth_logout, /vox_status."
)


def format_status(status: SessionStatus) -> str:
    return "\n".join([
        "Status",
        f"Provider: {status.provider}",
        f"Model: {status.model}",
        f"History Turns: {status.history_turns}/{status.max_history_turns * 2}",
    ])


def format_oauth_status(status: AuthStatus) -> str:
    lines = ["OAuth Status"]
    if status.tokens:
        lines.append("Tokens:")
        lines.extend(f"- [{token.status}] {token.label} until {token.expires_at_text}" for token in status.tokens)
    else:
        lines.append("Tokens: none")
    lines.append(f"Keys: {', '.join(status.keys)}" if status.keys else "Keys: none")
    return "\n".join(lines)


class ChannelCommands:
    """Command semantics shared by the Discord and Telegram front-ends."""

    def __init__(self, runtime: ConversationRuntime, wanda_cli: WandaCli, voice: VoiceBridge) -> None:
        self.runtime = runtime
        self.wanda_cli = wanda_cli
        self.voice = voice

    async def ask(self, key: str, text: str, metadata: Metadata | None = None) -> str:
        return await self.runtime.ask(key, text, metadata)

    def provider(self, key: str, name: str | None = None) -> str:
        if not name:
            status = self.runtime.status(key)
            return (
                f"Current provider: {status.provider}\n"
                f"Model: {status.model}\n"
                f"Available: {', '.join(self.runtime.list_providers())}\n"
                "Use /provider <name>"
            )
        selected = self.runtime.set_provider(key, name)
        return f"Provider set: {selected.provider}\nModel: {selected.model}"

    def model(self, key: str, name: str | None = None) -> str:
        if not name:
            session = self.runtime.get_session(key)
            models = ", ".join(self.runtime.list_models(session.provider_name))
            return f"Models for {session.provider_name}: {models}\nUse /model <name>"
        selected = self.runtime.set_model(key, name)
        return f"Model set: {selected.model} (provider {selected.provider})"

    def status(self, key: str) -> str:
        return format_status(self.runtime.status(key))

    def reset(self, key: str) -> str:
        self.runtime.reset(key)
        return "Context was reset."

    async def oauth_status(self) -> str:
        return format_oauth_status(await self.wanda_cli.auth_status())

    async def oauth_login(self, provider: str) -> str:
        output = await self.wanda_cli.auth_login(provider)
        return f"OAuth login result ({provider}):\n{tail_lines(output)}"

    async def oauth_logout(self, provider: str) -> str:
        output = await self.wanda_cli.auth_logout(provider)
        return f"OAuth logout result ({provider}):\n{tail_lines(output)}"

    def oauth_usage(self, action: str) -> str:
        return f"Use /oauth_{action} <{'|'.join(OAUTH_PROVIDERS)}>"

    def vox_status(self) -> str:
        return self.voice.status_text()
