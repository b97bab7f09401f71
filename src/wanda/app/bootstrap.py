"""Application bootstrap helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from dotenv import load_dotenv
from loguru import logger

from wanda.adapters import build_default_adapters
from wanda.app.runtime import ConversationRuntime
from wanda.config import Settings, load_settings
from wanda.integrations import VoxCli, WandaCli
from wanda.providers import resolve_provider_config
from wanda.types import Adapter


@dataclass
class AppContext:
    """Everything a front-end needs: settings, the runtime and the CLI wrappers."""

    settings: Settings
    runtime: ConversationRuntime
    wanda_cli: WandaCli
    vox_cli: VoxCli
    adapters: Mapping[str, Adapter] = field(default_factory=dict)

    async def aclose(self) -> None:
        """Release clients held by the adapters."""
        for adapter in self.adapters.values():
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()


def build_cli_wrappers(settings: Settings) -> tuple[WandaCli, VoxCli]:
    return (
        WandaCli(settings.wanda_cli_bin),
        VoxCli(settings.vox_cli_bin, project_root=settings.vox_project_root),
    )


def build_app(settings: Settings | None = None, env: Mapping[str, str] | None = None) -> AppContext:
    """Resolve providers and wire the runtime with the default adapters.

    Raises:
        ConfigurationError: no usable provider is configured.
    """
    if env is None:
        # Provider keys are dynamic (apiKeyEnv), so `.env` must reach os.environ.
        load_dotenv()
        env = os.environ
    settings = settings or load_settings()
    wanda_cli, vox_cli = build_cli_wrappers(settings)

    config = resolve_provider_config(env)
    adapters = build_default_adapters(env, wanda_cli=wanda_cli)
    runtime = ConversationRuntime(
        config,
        adapters,
        system_prompt=settings.wanda_system_prompt,
    )
    logger.info(
        "app.bootstrap providers={} default_provider={} max_history_turns={}",
        config.provider_names(),
        config.default_provider,
        config.max_history_turns,
    )
    return AppContext(settings=settings, runtime=runtime, wanda_cli=wanda_cli, vox_cli=vox_cli, adapters=adapters)
