"""Base channel interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wanda.app.bootstrap import AppContext
from wanda.channels.commands import ChannelCommands
from wanda.channels.voice import VoiceBridge


class BaseChannel(ABC):
    """Abstract base class for chat front-ends."""

    name: str = "base"

    def __init__(self, app: AppContext) -> None:
        self.app = app
        self.runtime = app.runtime
        self.voice = VoiceBridge(app.settings, app.vox_cli, app.runtime)
        self.commands = ChannelCommands(app.runtime, app.wanda_cli, self.voice)

    @abstractmethod
    async def start(self) -> None:
        """Connect to the platform and serve until stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect from the platform."""

    async def run(self) -> None:
        try:
            await self.start()
        finally:
            try:
                await self.stop()
            finally:
                await self.app.aclose()
