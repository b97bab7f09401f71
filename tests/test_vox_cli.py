from __future__ import annotations

import os

import pytest

from wanda.errors import NonZeroExitError, NoTranscriptError
from wanda.integrations import vox_cli as vox_cli_module
from wanda.integrations.vox_cli import PYTHON_MODULE, TRANSCRIBE_TIMEOUT_SECONDS, VoxCli
from wanda.process import ProcessResult


class FakeRunner:
    def __init__(self, stdout: str = "", error: Exception | None = None) -> None:
        self.stdout = stdout
        self.error = error
        self.calls: list[dict[str, object]] = []

    async def __call__(self, executable, args, *, timeout_seconds, cwd=None, extra_env=None, label="process"):
        self.calls.append({
            "executable": executable,
            "args": list(args),
            "timeout": timeout_seconds,
            "cwd": cwd,
            "env": dict(extra_env or {}),
        })
        if self.error is not None:
            raise self.error
        return ProcessResult(stdout=self.stdout, stderr="", exit_code=0)


def _install(monkeypatch: pytest.MonkeyPatch, runner: FakeRunner) -> FakeRunner:
    monkeypatch.setattr(vox_cli_module, "run_process", runner)
    return runner


@pytest.mark.asyncio
async def test_transcribe_with_plain_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    runner = _install(monkeypatch, FakeRunner("\x1b[35mUSER >\x1b[0m Guten Morgen\n"))
    result = await VoxCli("/usr/local/bin/vox").transcribe("/tmp/voice.ogg", model="small")

    assert result.transcript == "Guten Morgen"
    call = runner.calls[0]
    assert call["args"] == ["transcribe", "/tmp/voice.ogg", "--model", "small"]
    assert call["timeout"] == TRANSCRIBE_TIMEOUT_SECONDS
    assert call["cwd"] is None
    assert call["env"] == {}


@pytest.mark.asyncio
async def test_python_interpreter_runs_module_from_project_root(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("PYTHONPATH", "/existing")
    runner = _install(monkeypatch, FakeRunner("USER > hi"))
    cli = VoxCli(str(tmp_path / ".venv" / "bin" / "python3"), project_root=tmp_path)

    await cli.transcribe(tmp_path / "a.ogg")

    call = runner.calls[0]
    assert call["args"] == ["-m", PYTHON_MODULE, "transcribe", str(tmp_path / "a.ogg")]
    assert call["cwd"] == tmp_path
    assert call["env"] == {"PYTHONPATH": f"{tmp_path / 'src'}{os.pathsep}/existing"}


@pytest.mark.asyncio
async def test_transcribe_without_transcript_line_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, FakeRunner("nothing recognized\n"))
    with pytest.raises(NoTranscriptError):
        await VoxCli().transcribe("voice.ogg")


@pytest.mark.asyncio
async def test_missing_websockets_adds_install_hint(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    error = NonZeroExitError(1, "ModuleNotFoundError: No module named 'websockets'")
    _install(monkeypatch, FakeRunner(error=error))

    with pytest.raises(NonZeroExitError) as exc_info:
        await VoxCli(project_root=tmp_path).transcribe("voice.ogg")

    assert exc_info.value.exit_code == 1
    assert "Hint: install VOX deps" in str(exc_info.value)
    assert str(tmp_path) in str(exc_info.value)


@pytest.mark.asyncio
async def test_other_failures_are_passed_through(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, FakeRunner(error=NonZeroExitError(2, "bad file")))
    with pytest.raises(NonZeroExitError, match="^bad file$"):
        await VoxCli().transcribe("voice.ogg")


@pytest.mark.asyncio
@pytest.mark.parametrize(("stdout", "healthy"), [("VOX Voice 1.2\nUsage: vox ...", True), ("hello", False)])
async def test_health_check(monkeypatch: pytest.MonkeyPatch, stdout: str, healthy: bool) -> None:
    runner = _install(monkeypatch, FakeRunner(stdout))
    assert await VoxCli().health_check() is healthy
    assert runner.calls[0]["args"] == ["--help"]
