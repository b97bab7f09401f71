"""Adapter that answers through the local `wanda` CLI."""

from __future__ import annotations

from collections.abc import Sequence

from wanda.integrations.wanda_cli import WandaCli
from wanda.types import AdapterRequest, Turn


def render_cli_prompt(system_prompt: str, history: Sequence[Turn], user_input: str) -> str:
    """Flatten a conversation into one prompt for a single-shot CLI call."""
    lines: list[str] = []
    if system_prompt:
        lines.extend(["System:", system_prompt, ""])
    if history:
        lines.append("Conversation history:")
        for turn in history:
            speaker = "Assistant" if turn.role == "assistant" else "User"
            lines.append(f"{speaker}: {turn.content}")
        lines.append("")
    lines.append(f"Current user message: {user_input}")
    lines.append("Answer as assistant only.")
    return "\n".join(lines)


class WandaCliAdapter:
    def __init__(self, cli: WandaCli, *, select_model: bool = True) -> None:
        self._cli = cli
        self._select_model = select_model

    async def __call__(self, request: AdapterRequest) -> str:
        prompt = render_cli_prompt(request.system_prompt, request.history, request.user_input)
        model_ref = request.model if self._select_model else None
        result = await self._cli.test_model(prompt, model_ref=model_ref)
        return result.answer
