"""Adapter for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from wanda.errors import EmptyResponseError, MissingCredentialError, ProviderRequestError
from wanda.types import AdapterRequest

DEFAULT_BASE_URL = "https://api.openai.com/v1"
REQUEST_TIMEOUT_SECONDS = 60.0


def build_messages(request: AdapterRequest) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": request.system_prompt}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in request.history)
    messages.append({"role": "user", "content": request.user_input})
    return messages


def _message_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    content = (choices[0].get("message") or {}).get("content")
    return content.strip() if isinstance(content, str) else ""


class ChatCompletionsAdapter:
    """POSTs to ``{base_url}/chat/completions`` through one shared async client."""

    def __init__(
        self,
        *,
        fallback_api_key: str | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._fallback_api_key = fallback_api_key or ""
        self._timeout_seconds = timeout_seconds
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, request: AdapterRequest) -> str:
        provider = request.provider
        api_key = provider.api_key or self._fallback_api_key
        if not api_key:
            raise MissingCredentialError(f"Missing API key for provider '{provider.name}'.")

        base_url = (provider.base_url or DEFAULT_BASE_URL).rstrip("/")
        payload = {
            "model": request.model,
            "messages": build_messages(request),
            "temperature": provider.temperature,
        }
        logger.debug("openai.request provider={} model={} url={}", provider.name, request.model, base_url)
        try:
            response = await self._http().post(
                f"{base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip()[:300]
            raise ProviderRequestError(
                f"Provider '{provider.name}' returned HTTP {exc.response.status_code}: {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderRequestError(f"Provider '{provider.name}' request failed: {exc!s}") from exc
        except ValueError as exc:
            raise ProviderRequestError(f"Provider '{provider.name}' returned invalid JSON.") from exc

        text = _message_text(data)
        if not text:
            raise EmptyResponseError("OpenAI-compatible provider returned no text.")
        return text
