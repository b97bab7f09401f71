from __future__ import annotations

import pytest

from wanda.app.bootstrap import AppContext
from wanda.app.runtime import ConversationRuntime
from wanda.config import Settings
from wanda.integrations import VoxCli, WandaCli
from wanda.providers import ProviderConfig, resolve_provider_config

RAW_PROVIDERS = {
    "gemini": {
        "type": "gemini",
        "models": ["gemini-2.5-flash", "gemini-2.5-pro"],
        "apiKey": "g-key",
    },
    "local": {
        "type": "openai",
        "baseUrl": "http://localhost:11434/v1",
        "models": ["qwen2.5:7b-instruct"],
        "apiKey": "ollama",
    },
}


@pytest.fixture(autouse=True)
def _isolate_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("WANDA_PROVIDERS_JSON", "WANDA_DEFAULT_PROVIDER", "WANDA_MAX_HISTORY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def provider_config() -> ProviderConfig:
    return resolve_provider_config({"WANDA_MAX_HISTORY": "2"}, RAW_PROVIDERS)


async def echo_adapter(request) -> str:
    return f"echo {request.user_input}"


@pytest.fixture
def app_context(provider_config: ProviderConfig) -> AppContext:
    settings = Settings(
        _env_file=None,
        telegram_bot_token="t",
        discord_bot_token="d",
        vox_stt_mode="webhook",
        vox_stt_webhook_url=None,
    )
    runtime = ConversationRuntime(provider_config, {"gemini": echo_adapter, "openai": echo_adapter})
    return AppContext(settings=settings, runtime=runtime, wanda_cli=WandaCli(), vox_cli=VoxCli())
