"""Shared conversation types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypeAlias

from wanda.providers import Provider

Role: TypeAlias = Literal["user", "assistant"]
Metadata: TypeAlias = Mapping[str, Any]


@dataclass(frozen=True)
class Turn:
    """One message in a session's bounded history."""

    role: Role
    content: str


@dataclass(frozen=True)
class AdapterRequest:
    """Everything an adapter needs to produce one assistant answer."""

    provider: Provider
    model: str
    system_prompt: str
    history: tuple[Turn, ...]
    user_input: str
    metadata: Metadata = field(default_factory=dict)


class Adapter(Protocol):
    """Strategy that talks to one category of provider."""

    async def __call__(self, request: AdapterRequest) -> str: ...
