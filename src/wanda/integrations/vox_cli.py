"""Wrapper around the `vox` speech-transcription command-line tool."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from wanda.config import DEFAULT_VOX_CLI_BIN
from wanda.errors import NonZeroExitError, NoTranscriptError
from wanda.parsers import parse_transcript, strip_ansi
from wanda.process import ProcessResult, executable_exists, run_process

LABEL = "VOX CLI"
PYTHON_MODULE = "wandavoice.main"
TRANSCRIBE_TIMEOUT_SECONDS = 600.0
HEALTH_TIMEOUT_SECONDS = 20.0
HELP_BANNER_RE = re.compile(r"VOX Voice|Usage:", re.IGNORECASE)
MISSING_WEBSOCKETS_RE = re.compile(r"No module named 'websockets'")


@dataclass(frozen=True)
class Transcription:
    transcript: str
    raw: str


class VoxCli:
    """Runs `vox` directly, or as ``python -m wandavoice.main`` from a project checkout."""

    def __init__(self, bin_path: str | None = None, *, project_root: str | os.PathLike[str] | None = None) -> None:
        self.bin_path = bin_path or DEFAULT_VOX_CLI_BIN
        self.project_root = Path(project_root).expanduser() if project_root else None

    def is_available(self) -> bool:
        return executable_exists(self.bin_path)

    @property
    def runs_as_module(self) -> bool:
        return Path(self.bin_path).name.startswith("python")

    def command_args(self, args: list[str]) -> list[str]:
        if self.runs_as_module:
            return ["-m", PYTHON_MODULE, *args]
        return list(args)

    def extra_env(self) -> dict[str, str]:
        if self.project_root is None:
            return {}
        src_root = str(self.project_root / "src")
        current = os.environ.get("PYTHONPATH")
        return {"PYTHONPATH": f"{src_root}{os.pathsep}{current}" if current else src_root}

    async def run(self, args: list[str], *, timeout_seconds: float) -> ProcessResult:
        try:
            return await run_process(
                self.bin_path,
                self.command_args(args),
                timeout_seconds=timeout_seconds,
                cwd=self.project_root,
                extra_env=self.extra_env(),
                label=LABEL,
            )
        except NonZeroExitError as exc:
            raise NonZeroExitError(exc.exit_code, self._with_hint(str(exc))) from exc

    async def transcribe(self, file_path: str | os.PathLike[str], *, model: str | None = None) -> Transcription:
        args = ["transcribe", os.fspath(file_path)]
        if model:
            args.extend(["--model", str(model)])
        result = await self.run(args, timeout_seconds=TRANSCRIBE_TIMEOUT_SECONDS)
        transcript = parse_transcript(result.stdout)
        if not transcript:
            raise NoTranscriptError("VOX transcription returned no text.")
        return Transcription(transcript=transcript, raw=strip_ansi(result.stdout).strip())

    async def health_check(self) -> bool:
        result = await self.run(["--help"], timeout_seconds=HEALTH_TIMEOUT_SECONDS)
        return bool(HELP_BANNER_RE.search(strip_ansi(result.stdout)))

    def _with_hint(self, message: str) -> str:
        if not MISSING_WEBSOCKETS_RE.search(message):
            return message
        root = self.project_root or Path("<vox project>")
        return f"{message}\nHint: install VOX deps, e.g. 'cd {root} && .venv/bin/pip install -r requirements.txt'."
