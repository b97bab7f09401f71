"""Provider registry resolved from configuration."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from wanda.config import DEFAULT_WANDA_CLI_BIN
from wanda.errors import ConfigurationError
from wanda.process import executable_exists

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_HISTORY_TURNS = 14
MIN_MAX_HISTORY_TURNS = 2

PROVIDERS_JSON_ENV = "WANDA_PROVIDERS_JSON"
DEFAULT_PROVIDER_ENV = "WANDA_DEFAULT_PROVIDER"
MAX_HISTORY_ENV = "WANDA_MAX_HISTORY"

GEMINI_TYPE = "gemini"
OPENAI_TYPE = "openai"
WANDA_CLI_TYPE = "wanda-cli"

_DISABLED_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class Provider:
    """A configured backend with its model catalog and resolved credential."""

    name: str
    type: str
    models: tuple[str, ...]
    default_model: str
    temperature: float = DEFAULT_TEMPERATURE
    base_url: str = ""
    api_key: str = ""
    api_key_env: str = ""

    def has_model(self, model: str) -> bool:
        return model in self.models


@dataclass(frozen=True)
class ProviderConfig:
    providers: Mapping[str, Provider]
    default_provider: str
    max_history_turns: int = DEFAULT_MAX_HISTORY_TURNS

    def provider_names(self) -> list[str]:
        return list(self.providers)


class RawProvider(BaseModel):
    """One provider entry as written in configuration."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str | None = None
    models: list[str] = Field(default_factory=list)
    default_model: str | None = Field(default=None, validation_alias=AliasChoices("defaultModel", "default_model"))
    model: str | None = None
    temperature: float | None = None
    base_url: str | None = Field(default=None, validation_alias=AliasChoices("baseUrl", "baseURL", "base_url"))
    api_key_env: str | None = Field(default=None, validation_alias=AliasChoices("apiKeyEnv", "api_key_env"))
    api_key: str | None = Field(default=None, validation_alias=AliasChoices("apiKey", "api_key"))

    @field_validator("models", mode="before")
    @classmethod
    def _coerce_models(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            return split_list(value)
        if isinstance(value, list | tuple):
            return [str(item).strip() for item in value if item and str(item).strip()]
        return []

    @field_validator("temperature", mode="before")
    @classmethod
    def _coerce_temperature(cls, value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


def split_list(value: str | None) -> list[str]:
    if not value or not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def pick_first(*values: Any) -> Any:
    for value in values:
        if value is not None and str(value).strip() != "":
            return value
    return None


def normalize_provider(name: str, raw: Mapping[str, Any] | None, env: Mapping[str, str]) -> Provider | None:
    """Normalize one raw entry; entries without any model are dropped."""
    try:
        entry = RawProvider.model_validate(dict(raw or {}))
    except ValidationError as exc:
        logger.warning("providers.normalize.invalid name={} error={}", name, exc)
        return None

    models = list(entry.models)
    default_model = pick_first(entry.default_model, entry.model) or (models[0] if models else None)
    if not default_model:
        logger.debug("providers.normalize.dropped name={} reason=no_model", name)
        return None
    default_model = str(default_model).strip()
    if default_model not in models:
        models.insert(0, default_model)

    api_key_env = (entry.api_key_env or "").strip()
    api_key = (entry.api_key or "").strip()
    if not api_key and api_key_env:
        api_key = env.get(api_key_env, "") or ""

    return Provider(
        name=name,
        type=(entry.type or name).strip(),
        models=tuple(models),
        default_model=default_model,
        temperature=entry.temperature if entry.temperature is not None else DEFAULT_TEMPERATURE,
        base_url=(entry.base_url or "").strip(),
        api_key=api_key,
        api_key_env=api_key_env,
    )


def _temperature(value: str | None) -> float:
    try:
        return float(pick_first(value, DEFAULT_TEMPERATURE))
    except (TypeError, ValueError):
        return DEFAULT_TEMPERATURE


def build_from_environment(env: Mapping[str, str]) -> dict[str, dict[str, Any]]:
    """Derive raw provider entries from well-known environment variables."""
    providers: dict[str, dict[str, Any]] = {}

    if env.get("GOOGLE_API_KEY"):
        models = split_list(pick_first(env.get("GEMINI_MODELS"), env.get("GEMINI_MODEL")))
        providers["gemini"] = {
            "type": GEMINI_TYPE,
            "models": models or ["gemini-2.5-flash", "gemini-2.5-pro"],
            "defaultModel": pick_first(env.get("GEMINI_DEFAULT_MODEL"), *models[:1], "gemini-2.5-flash"),
            "temperature": _temperature(env.get("GEMINI_TEMPERATURE")),
            "apiKeyEnv": "GOOGLE_API_KEY",
        }

    if any(env.get(key) for key in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL", "OPENAI_MODELS")):
        models = split_list(pick_first(env.get("OPENAI_MODELS"), env.get("OPENAI_MODEL")))
        providers["openai"] = {
            "type": OPENAI_TYPE,
            "baseUrl": pick_first(env.get("OPENAI_BASE_URL"), "https://api.openai.com/v1"),
            "models": models or ["gpt-5-mini"],
            "defaultModel": pick_first(env.get("OPENAI_DEFAULT_MODEL"), *models[:1], "gpt-5-mini"),
            "temperature": _temperature(env.get("OPENAI_TEMPERATURE")),
            "apiKeyEnv": "OPENAI_API_KEY",
        }

    if any(env.get(key) for key in ("OLLAMA_BASE_URL", "OLLAMA_MODEL", "OLLAMA_MODELS")):
        models = split_list(pick_first(env.get("OLLAMA_MODELS"), env.get("OLLAMA_MODEL")))
        providers["ollama"] = {
            "type": OPENAI_TYPE,
            "baseUrl": pick_first(env.get("OLLAMA_BASE_URL"), "http://localhost:11434/v1"),
            "models": models or ["qwen2.5:7b-instruct"],
            "defaultModel": pick_first(env.get("OLLAMA_DEFAULT_MODEL"), *models[:1], "qwen2.5:7b-instruct"),
            "temperature": _temperature(env.get("OLLAMA_TEMPERATURE")),
            "apiKey": pick_first(env.get("OLLAMA_API_KEY"), "ollama"),
        }

    cli_enabled = str(pick_first(env.get("WANDA_CLI_ENABLED"), "true")).strip().lower() not in _DISABLED_VALUES
    if cli_enabled and executable_exists(pick_first(env.get("WANDA_CLI_BIN"), DEFAULT_WANDA_CLI_BIN)):
        refs = split_list(pick_first(env.get("WANDA_CLI_MODEL_REFS"), env.get("WANDA_CLI_MODEL_REF")))
        providers["wanda"] = {
            "type": WANDA_CLI_TYPE,
            "models": refs
            or [
                "gemini/oauth/gemini-3.1-pro-high",
                "openai/oauth/gpt-5.2",
                "anthropic/oauth/claude-4.6-sonnet",
            ],
            "defaultModel": pick_first(
                env.get("WANDA_CLI_DEFAULT_MODEL"), *refs[:1], "gemini/oauth/gemini-3.1-pro-high"
            ),
            "temperature": _temperature(env.get("WANDA_CLI_TEMPERATURE")),
        }

    return providers


def _load_raw_providers(env: Mapping[str, str]) -> Mapping[str, Any]:
    payload = env.get(PROVIDERS_JSON_ENV)
    if not payload:
        return build_from_environment(env)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{PROVIDERS_JSON_ENV} is invalid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{PROVIDERS_JSON_ENV} must be a JSON object of provider entries.")
    return data


def _max_history_turns(value: str | None) -> int:
    if value is None or not str(value).strip():
        return DEFAULT_MAX_HISTORY_TURNS
    try:
        parsed = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_MAX_HISTORY_TURNS
    return max(MIN_MAX_HISTORY_TURNS, parsed)


def resolve_provider_config(
    env: Mapping[str, str],
    raw_providers: Mapping[str, Any] | None = None,
) -> ProviderConfig:
    """Resolve the immutable provider registry.

    Args:
        env: Environment mapping used for discovery and `apiKeyEnv` lookups.
        raw_providers: Explicit provider entries; skips environment discovery.

    Raises:
        ConfigurationError: no provider survives normalization, or the named
            default provider is not registered.
    """
    raw = raw_providers if raw_providers is not None else _load_raw_providers(env)

    providers: dict[str, Provider] = {}
    for name, entry in raw.items():
        normalized = normalize_provider(str(name), entry if isinstance(entry, Mapping) else None, env)
        if normalized is not None:
            providers[normalized.name] = normalized

    if not providers:
        raise ConfigurationError(
            "No providers configured. Set GOOGLE_API_KEY or OPENAI/OLLAMA env vars, or WANDA_PROVIDERS_JSON."
        )

    requested_default = (env.get(DEFAULT_PROVIDER_ENV) or "").strip()
    if requested_default and requested_default not in providers:
        raise ConfigurationError(
            f"{DEFAULT_PROVIDER_ENV}={requested_default!r} is not a configured provider "
            f"(available: {', '.join(providers)})."
        )
    default_provider = requested_default or next(iter(providers))

    config = ProviderConfig(
        providers=MappingProxyType(providers),
        default_provider=default_provider,
        max_history_turns=_max_history_turns(env.get(MAX_HISTORY_ENV)),
    )
    logger.debug(
        "providers.resolved names={} default={} max_history_turns={}",
        config.provider_names(),
        config.default_provider,
        config.max_history_turns,
    )
    return config
