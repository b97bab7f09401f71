"""Provider adapters keyed by provider type."""

from __future__ import annotations

from collections.abc import Mapping

from wanda.adapters.gemini import GeminiAdapter
from wanda.adapters.openai_compat import ChatCompletionsAdapter
from wanda.adapters.wanda_cli import WandaCliAdapter, render_cli_prompt
from wanda.integrations.wanda_cli import WandaCli
from wanda.providers import GEMINI_TYPE, OPENAI_TYPE, WANDA_CLI_TYPE
from wanda.types import Adapter


def build_default_adapters(env: Mapping[str, str], *, wanda_cli: WandaCli) -> dict[str, Adapter]:
    return {
        GEMINI_TYPE: GeminiAdapter(fallback_api_key=env.get("GOOGLE_API_KEY")),
        OPENAI_TYPE: ChatCompletionsAdapter(fallback_api_key=env.get("OPENAI_API_KEY")),
        WANDA_CLI_TYPE: WandaCliAdapter(wanda_cli),
    }


__all__ = [
    "ChatCompletionsAdapter",
    "GeminiAdapter",
    "WandaCliAdapter",
    "build_default_adapters",
    "render_cli_prompt",
]
