"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "console"]

DEBUG_ENV = "WANDA_DEBUG"
LEVEL_ENV = "WANDA_LOG_LEVEL"
_DEBUG_VALUES = frozenset({"1", "true", "yes", "on", "debug"})
_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {message}"
_CONFIGURED_PROFILE: LogProfile | None = None


def debug_enabled(value: str | None = None) -> bool:
    raw = os.getenv(DEBUG_ENV, "") if value is None else value
    return raw.strip().lower() in _DEBUG_VALUES


def resolve_level() -> str:
    if debug_enabled():
        return "DEBUG"
    return os.getenv(LEVEL_ENV, "INFO").upper()


def _build_console_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default") -> None:
    """Configure process-level logging once."""
    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    level = resolve_level()
    logger.remove()
    if profile == "console":
        logger.add(
            _build_console_handler(),
            level=level,
            format="{message}",
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_DEFAULT_FORMAT,
            backtrace=False,
            diagnose=False,
        )
    _CONFIGURED_PROFILE = profile
