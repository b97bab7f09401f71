"""Wrappers for the external command-line tools."""

from wanda.integrations.vox_cli import Transcription, VoxCli
from wanda.integrations.wanda_cli import OAUTH_PROVIDERS, ModelAnswer, WandaCli

__all__ = ["OAUTH_PROVIDERS", "ModelAnswer", "Transcription", "VoxCli", "WandaCli"]
