"""Conversation runtime and per-key session management."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from loguru import logger

from wanda.errors import NoAdapterError, UnknownModelError, UnknownProviderError
from wanda.providers import Provider, ProviderConfig
from wanda.types import Adapter, AdapterRequest, Metadata, Turn


@dataclass
class Session:
    """Mutable state of one conversation."""

    provider_name: str
    model: str
    history: list[Turn] = field(default_factory=list)


@dataclass(frozen=True)
class Selection:
    provider: str
    model: str


@dataclass(frozen=True)
class SessionStatus:
    provider: str
    model: str
    history_turns: int
    max_history_turns: int


class ConversationRuntime:
    """Owns one session per conversation key and dispatches to provider adapters.

    No per-key serialization is done here: callers must not run ``ask``,
    ``set_provider``, ``set_model`` or ``reset`` concurrently on the same key.
    """

    def __init__(
        self,
        config: ProviderConfig,
        adapters: Mapping[str, Adapter],
        *,
        system_prompt: str = "",
    ) -> None:
        self.config = config
        self.system_prompt = system_prompt
        self._adapters = dict(adapters)
        self._sessions: dict[str, Session] = {}

    @property
    def max_history_turns(self) -> int:
        return self.config.max_history_turns

    def list_providers(self) -> list[str]:
        return self.config.provider_names()

    def list_models(self, provider_name: str) -> list[str]:
        provider = self.config.providers.get(provider_name)
        return list(provider.models) if provider is not None else []

    def _new_session(self) -> Session:
        provider = self.config.providers[self.config.default_provider]
        return Session(provider_name=provider.name, model=provider.default_model)

    def get_session(self, key: str) -> Session:
        existing = self._sessions.get(key)
        if existing is not None:
            return existing
        session = self._new_session()
        self._sessions[key] = session
        return session

    def provider_for(self, session: Session) -> Provider:
        return self.config.providers[session.provider_name]

    def set_provider(self, key: str, provider_name: str) -> Selection:
        provider = self.config.providers.get(provider_name)
        if provider is None:
            raise UnknownProviderError(provider_name)
        session = self.get_session(key)
        session.provider_name = provider.name
        session.model = provider.default_model
        session.history = []
        logger.debug("runtime.set_provider key={} provider={} model={}", key, provider.name, session.model)
        return Selection(provider=session.provider_name, model=session.model)

    def set_model(self, key: str, model: str) -> Selection:
        session = self.get_session(key)
        provider = self.provider_for(session)
        if not provider.has_model(model):
            raise UnknownModelError(model, provider.name)
        session.model = model
        logger.debug("runtime.set_model key={} provider={} model={}", key, provider.name, model)
        return Selection(provider=session.provider_name, model=session.model)

    def reset(self, key: str) -> Session:
        session = self._new_session()
        self._sessions[key] = session
        logger.debug("runtime.reset key={}", key)
        return session

    def status(self, key: str) -> SessionStatus:
        session = self.get_session(key)
        return SessionStatus(
            provider=session.provider_name,
            model=session.model,
            history_turns=len(session.history),
            max_history_turns=self.max_history_turns,
        )

    def _prune(self, history: list[Turn]) -> list[Turn]:
        max_items = self.max_history_turns * 2
        if len(history) > max_items:
            return history[-max_items:]
        return history

    async def ask(self, key: str, user_input: str, metadata: Metadata | None = None) -> str:
        """Answer ``user_input`` in the session of ``key``.

        The session is only updated after the adapter succeeded; any failure
        propagates and leaves the history as it was.
        """
        session = self.get_session(key)
        provider = self.provider_for(session)
        adapter = self._adapters.get(provider.type)
        if adapter is None:
            raise NoAdapterError(provider.type)

        request = AdapterRequest(
            provider=provider,
            model=session.model,
            system_prompt=self.system_prompt,
            history=tuple(session.history),
            user_input=user_input,
            metadata=dict(metadata or {}),
        )
        logger.info(
            "runtime.ask key={} provider={} model={} history_turns={}",
            key,
            provider.name,
            session.model,
            len(session.history),
        )
        answer = await adapter(request)

        session.history = self._prune([
            *session.history,
            Turn(role="user", content=user_input),
            Turn(role="assistant", content=answer),
        ])
        return answer
