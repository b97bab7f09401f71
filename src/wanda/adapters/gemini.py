"""Adapter for Google Gemini through the google-genai SDK."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeAlias

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from loguru import logger

from wanda.errors import EmptyResponseError, MissingCredentialError, ProviderRequestError
from wanda.types import AdapterRequest

MAX_CACHED_CLIENTS = 8

ClientFactory: TypeAlias = Callable[[str], Any]


def build_contents(request: AdapterRequest) -> list[genai_types.Content]:
    contents = [
        genai_types.Content(
            role="model" if turn.role == "assistant" else "user",
            parts=[genai_types.Part(text=turn.content)],
        )
        for turn in request.history
    ]
    contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=request.user_input)]))
    return contents


def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


class GeminiAdapter:
    """Keeps one SDK client per API key in a small LRU cache."""

    def __init__(
        self,
        *,
        fallback_api_key: str | None = None,
        max_clients: int = MAX_CACHED_CLIENTS,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._fallback_api_key = fallback_api_key or ""
        self._max_clients = max(1, max_clients)
        self._client_factory = client_factory or _default_client_factory
        self._clients: OrderedDict[str, Any] = OrderedDict()

    def client_for(self, api_key: str) -> Any:
        client = self._clients.get(api_key)
        if client is not None:
            self._clients.move_to_end(api_key)
            return client
        client = self._client_factory(api_key)
        self._clients[api_key] = client
        while len(self._clients) > self._max_clients:
            self._clients.popitem(last=False)
        return client

    async def __call__(self, request: AdapterRequest) -> str:
        provider = request.provider
        api_key = provider.api_key or self._fallback_api_key
        if not api_key:
            raise MissingCredentialError("GOOGLE_API_KEY is missing for Gemini provider.")

        client = self.client_for(api_key)
        config = genai_types.GenerateContentConfig(
            system_instruction=request.system_prompt or None,
            temperature=provider.temperature,
        )
        logger.debug("gemini.request provider={} model={}", provider.name, request.model)
        try:
            response = await client.aio.models.generate_content(
                model=request.model,
                contents=build_contents(request),
                config=config,
            )
        except genai_errors.APIError as exc:
            raise ProviderRequestError(f"Gemini request failed: {exc!s}") from exc

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise EmptyResponseError("Gemini returned no text.")
        return text
