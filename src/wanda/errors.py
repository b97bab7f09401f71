"""Application-level exception types for Wanda."""

from __future__ import annotations


class WandaError(Exception):
    """Base exception for Wanda."""


class ConfigurationError(WandaError):
    """Raised when provider configuration cannot be resolved at startup."""


class UnknownProviderError(WandaError):
    """Raised when switching to a provider that is not registered."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class UnknownModelError(WandaError):
    """Raised when a model is not configured for the session's provider."""

    def __init__(self, model: str, provider: str) -> None:
        super().__init__(f"Model '{model}' is not configured for provider '{provider}'.")
        self.model = model
        self.provider = provider


class NoAdapterError(WandaError):
    """Raised when no adapter is registered for a provider type."""

    def __init__(self, provider_type: str) -> None:
        super().__init__(f"No adapter for provider type: {provider_type}")
        self.provider_type = provider_type


class ProcessBridgeError(WandaError):
    """Base exception for external CLI invocations."""


class ExecutableNotFoundError(ProcessBridgeError):
    """Raised before spawning when the executable does not resolve."""

    def __init__(self, executable: str, *, label: str = "CLI") -> None:
        super().__init__(f"{label} not found at {executable}")
        self.executable = executable


class SpawnError(ProcessBridgeError):
    """Raised when the operating system refuses to start the process."""


class ProcessTimeoutError(ProcessBridgeError):
    """Raised when the process outlives its wall-clock budget."""

    def __init__(self, timeout_seconds: float, *, label: str = "CLI") -> None:
        super().__init__(f"{label} timed out after {timeout_seconds:g}s.")
        self.timeout_seconds = timeout_seconds


class NonZeroExitError(ProcessBridgeError):
    """Raised when the process exits with a nonzero status."""

    def __init__(self, exit_code: int, message: str) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class AdapterError(WandaError):
    """Base exception for provider adapters and output parsing."""


class MissingCredentialError(AdapterError):
    """Raised when no API key resolves for an HTTP provider."""


class EmptyResponseError(AdapterError):
    """Raised when an HTTP provider returns blank text."""


class EmptyAnswerError(AdapterError):
    """Raised when the model CLI output holds no answer text."""


class NoTranscriptError(AdapterError):
    """Raised when the transcription CLI output holds no transcript line."""


class ProviderRequestError(AdapterError):
    """Raised when an HTTP provider request fails at transport or status level."""
