"""Wanda - chat front-ends over interchangeable model backends."""

from .app.runtime import ConversationRuntime
from .providers import Provider, ProviderConfig, resolve_provider_config

__version__ = "0.1.0"

__all__ = ["ConversationRuntime", "Provider", "ProviderConfig", "resolve_provider_config"]
