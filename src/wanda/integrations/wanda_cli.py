"""Wrapper around the multi-provider `wanda` command-line tool."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from wanda.config import DEFAULT_WANDA_CLI_BIN
from wanda.errors import EmptyAnswerError
from wanda.parsers import AuthStatus, extract_answer, parse_auth_status
from wanda.process import ProcessResult, executable_exists, run_process

LABEL = "Wanda CLI"
DEFAULT_TIMEOUT_SECONDS = 180.0
LOGIN_TIMEOUT_SECONDS = 600.0
SELECT_TIMEOUT_SECONDS = 60.0
OAUTH_PROVIDERS = ("gemini", "openai", "anthropic", "github", "kimi")


@dataclass(frozen=True)
class ModelAnswer:
    answer: str
    raw: str


class WandaCli:
    """Typed access to the `wanda` CLI subcommands."""

    def __init__(self, bin_path: str | None = None, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.bin_path = bin_path or DEFAULT_WANDA_CLI_BIN
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        return executable_exists(self.bin_path)

    async def run(self, args: list[str], *, timeout_seconds: float | None = None) -> ProcessResult:
        return await run_process(
            self.bin_path,
            args,
            timeout_seconds=timeout_seconds or self.timeout_seconds,
            label=LABEL,
        )

    async def auth_status(self) -> AuthStatus:
        result = await self.run(["auth", "status"])
        return parse_auth_status(result.stdout)

    async def auth_login(self, provider: str) -> str:
        name = _normalize_provider(provider, action="login")
        logger.info("wanda_cli.auth.login provider={}", name)
        result = await self.run(["auth", "login", name], timeout_seconds=LOGIN_TIMEOUT_SECONDS)
        return result.stdout.strip()

    async def auth_logout(self, provider: str) -> str:
        name = _normalize_provider(provider, action="logout")
        logger.info("wanda_cli.auth.logout provider={}", name)
        result = await self.run(["auth", "logout", name])
        return result.stdout.strip()

    async def select_model(self, model_ref: str) -> None:
        await self.run(["model", "select", model_ref.strip()], timeout_seconds=SELECT_TIMEOUT_SECONDS)

    async def test_model(
        self,
        prompt: str,
        *,
        model_ref: str | None = None,
        timeout_seconds: float | None = None,
    ) -> ModelAnswer:
        text = (prompt or "").strip()
        if not text:
            raise ValueError("Prompt is required for wanda test model.")

        if model_ref and model_ref.strip():
            await self.select_model(model_ref)

        result = await self.run(["test", "model", text], timeout_seconds=timeout_seconds)
        answer = extract_answer(result.stdout)
        if not answer:
            raise EmptyAnswerError("Wanda CLI returned no answer text.")
        return ModelAnswer(answer=answer, raw=result.stdout.strip())


def _normalize_provider(provider: str, *, action: str) -> str:
    name = (provider or "").strip().lower()
    if not name:
        raise ValueError(f"Missing provider for OAuth {action}.")
    return name
