from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from wanda.errors import EmptyAnswerError, ExecutableNotFoundError, NonZeroExitError
from wanda.integrations import wanda_cli as wanda_cli_module
from wanda.integrations.wanda_cli import LOGIN_TIMEOUT_SECONDS, SELECT_TIMEOUT_SECONDS, WandaCli
from wanda.process import ProcessResult


class FakeRunner:
    def __init__(self, outputs: dict[tuple[str, ...], str] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[dict[str, object]] = []

    async def __call__(self, executable, args, *, timeout_seconds, label="process", **kwargs) -> ProcessResult:
        self.calls.append({"executable": executable, "args": list(args), "timeout": timeout_seconds, "label": label})
        return ProcessResult(stdout=self.outputs.get(tuple(args[:2]), ""), stderr="", exit_code=0)


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    fake = FakeRunner()
    monkeypatch.setattr(wanda_cli_module, "run_process", fake)
    return fake


@pytest.mark.asyncio
async def test_auth_status_parses_output(runner: FakeRunner) -> None:
    runner.outputs[("auth", "status")] = "[OK] Gemini -- bis morgen\n[KEY] OPENAI_API_KEY\n"
    status = await WandaCli("/opt/wanda").auth_status()

    assert runner.calls[0]["args"] == ["auth", "status"]
    assert runner.calls[0]["label"] == "Wanda CLI"
    assert [token.label for token in status.tokens] == ["Gemini"]
    assert status.keys == ["OPENAI_API_KEY"]


@pytest.mark.asyncio
async def test_auth_login_lowercases_provider_and_uses_long_timeout(runner: FakeRunner) -> None:
    runner.outputs[("auth", "login")] = "  Logged in.\n"
    output = await WandaCli().auth_login(" Gemini ")

    assert output == "Logged in."
    assert runner.calls[0]["args"] == ["auth", "login", "gemini"]
    assert runner.calls[0]["timeout"] == LOGIN_TIMEOUT_SECONDS


@pytest.mark.asyncio
async def test_auth_logout_requires_provider(runner: FakeRunner) -> None:
    with pytest.raises(ValueError, match="Missing provider for OAuth logout"):
        await WandaCli().auth_logout("  ")
    assert runner.calls == []


@pytest.mark.asyncio
async def test_test_model_selects_model_first(runner: FakeRunner) -> None:
    runner.outputs[("test", "model")] = "Antwort:\nHallo!\n"
    answer = await WandaCli(timeout_seconds=30).test_model(" hi ", model_ref="openai/oauth/gpt-5.2")

    assert answer.answer == "Hallo!"
    assert [call["args"] for call in runner.calls] == [
        ["model", "select", "openai/oauth/gpt-5.2"],
        ["test", "model", "hi"],
    ]
    assert runner.calls[0]["timeout"] == SELECT_TIMEOUT_SECONDS
    assert runner.calls[1]["timeout"] == 30


@pytest.mark.asyncio
async def test_test_model_rejects_blank_prompt(runner: FakeRunner) -> None:
    with pytest.raises(ValueError, match="Prompt is required"):
        await WandaCli().test_model("   ")


@pytest.mark.asyncio
async def test_test_model_without_answer_fails(runner: FakeRunner) -> None:
    with pytest.raises(EmptyAnswerError):
        await WandaCli().test_model("hi")


def _write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.mark.skipif(os.name == "nt", reason="shell script executable")
@pytest.mark.asyncio
async def test_real_script_round_trip(tmp_path: Path) -> None:
    script = _write_script(
        tmp_path / "wanda",
        'if [ "$1" = "test" ]; then echo "Antwort:"; echo "echo: $3"; exit 0; fi\n'
        'echo "unsupported" >&2\nexit 5\n',
    )
    cli = WandaCli(str(script), timeout_seconds=10)

    assert cli.is_available()
    assert (await cli.test_model("ping")).answer == "echo: ping"
    with pytest.raises(NonZeroExitError, match="unsupported"):
        await cli.auth_status()


@pytest.mark.asyncio
async def test_missing_binary_is_reported(tmp_path: Path) -> None:
    cli = WandaCli(str(tmp_path / "wanda"))
    assert not cli.is_available()
    with pytest.raises(ExecutableNotFoundError, match="Wanda CLI not found"):
        await cli.auth_status()
