from __future__ import annotations

import pytest

from wanda.app.runtime import ConversationRuntime
from wanda.errors import AdapterError, NoAdapterError, UnknownModelError, UnknownProviderError
from wanda.providers import resolve_provider_config
from wanda.types import AdapterRequest, Turn


class RecordingAdapter:
    def __init__(self, answer: str = "ok") -> None:
        self.answer = answer
        self.requests: list[AdapterRequest] = []

    async def __call__(self, request: AdapterRequest) -> str:
        self.requests.append(request)
        return f"{self.answer}:{request.user_input}"


class FailingAdapter:
    async def __call__(self, request: AdapterRequest) -> str:
        raise AdapterError("backend down")


def _runtime(provider_config, **adapters) -> ConversationRuntime:
    return ConversationRuntime(provider_config, adapters, system_prompt="be brief")


def test_get_session_is_created_lazily_and_idempotent(provider_config) -> None:
    runtime = _runtime(provider_config)
    first = runtime.get_session("tg:1:main")
    assert runtime.get_session("tg:1:main") is first
    assert first.provider_name == "gemini"
    assert first.model == "gemini-2.5-flash"
    assert first.history == []


def test_set_provider_resets_model_and_history(provider_config) -> None:
    runtime = _runtime(provider_config)
    session = runtime.get_session("k")
    session.history = [Turn(role="user", content="hi"), Turn(role="assistant", content="hey")]

    selection = runtime.set_provider("k", "local")

    assert (selection.provider, selection.model) == ("local", "qwen2.5:7b-instruct")
    assert runtime.get_session("k").history == []


def test_set_provider_rejects_unknown_name(provider_config) -> None:
    runtime = _runtime(provider_config)
    with pytest.raises(UnknownProviderError):
        runtime.set_provider("k", "missing")
    assert runtime.get_session("k").provider_name == "gemini"


def test_set_model_keeps_history(provider_config) -> None:
    runtime = _runtime(provider_config)
    session = runtime.get_session("k")
    session.history = [Turn(role="user", content="hi")]

    selection = runtime.set_model("k", "gemini-2.5-pro")

    assert selection.model == "gemini-2.5-pro"
    assert runtime.get_session("k").history == [Turn(role="user", content="hi")]


def test_set_model_rejects_model_of_other_provider(provider_config) -> None:
    runtime = _runtime(provider_config)
    with pytest.raises(UnknownModelError):
        runtime.set_model("k", "qwen2.5:7b-instruct")
    assert runtime.get_session("k").model == "gemini-2.5-flash"


def test_reset_recreates_default_session(provider_config) -> None:
    runtime = _runtime(provider_config)
    runtime.set_provider("k", "local")
    session = runtime.reset("k")
    assert session.provider_name == "gemini"
    assert runtime.get_session("k") is session


def test_status_is_read_only_snapshot(provider_config) -> None:
    runtime = _runtime(provider_config)
    status = runtime.status("k")
    assert status.provider == "gemini"
    assert status.history_turns == 0
    assert status.max_history_turns == 2


def test_list_models_for_unknown_provider_is_empty(provider_config) -> None:
    runtime = _runtime(provider_config)
    assert runtime.list_providers() == ["gemini", "local"]
    assert runtime.list_models("local") == ["qwen2.5:7b-instruct"]
    assert runtime.list_models("nope") == []


@pytest.mark.asyncio
async def test_ask_passes_snapshot_and_appends_turns(provider_config) -> None:
    adapter = RecordingAdapter()
    runtime = _runtime(provider_config, gemini=adapter)

    first = await runtime.ask("k", "one", {"chat_id": 1})
    second = await runtime.ask("k", "two")

    assert (first, second) == ("ok:one", "ok:two")
    assert adapter.requests[0].history == ()
    assert adapter.requests[0].system_prompt == "be brief"
    assert adapter.requests[0].metadata == {"chat_id": 1}
    assert adapter.requests[1].history == (
        Turn(role="user", content="one"),
        Turn(role="assistant", content="ok:one"),
    )
    assert adapter.requests[1].provider.name == "gemini"


@pytest.mark.asyncio
async def test_ask_prunes_history_to_twice_max_turns(provider_config) -> None:
    runtime = _runtime(provider_config, gemini=RecordingAdapter())
    for index in range(5):
        await runtime.ask("k", f"q{index}")

    history = runtime.get_session("k").history
    assert len(history) == 4
    assert history[0] == Turn(role="user", content="q3")
    assert history[-1] == Turn(role="assistant", content="ok:q4")


@pytest.mark.asyncio
async def test_failed_ask_leaves_session_untouched(provider_config) -> None:
    runtime = _runtime(provider_config, gemini=RecordingAdapter())
    await runtime.ask("k", "before")
    snapshot = list(runtime.get_session("k").history)

    runtime._adapters["gemini"] = FailingAdapter()
    with pytest.raises(AdapterError, match="backend down"):
        await runtime.ask("k", "after")

    assert runtime.get_session("k").history == snapshot


@pytest.mark.asyncio
async def test_ask_without_adapter_for_type_fails(provider_config) -> None:
    runtime = _runtime(provider_config, gemini=RecordingAdapter())
    runtime.set_provider("k", "local")
    with pytest.raises(NoAdapterError):
        await runtime.ask("k", "hello")
    assert runtime.get_session("k").history == []


@pytest.mark.asyncio
async def test_sessions_are_isolated_per_key() -> None:
    config = resolve_provider_config({}, {"a": {"model": "m"}})
    adapter = RecordingAdapter()
    runtime = ConversationRuntime(config, {"a": adapter})

    await runtime.ask("dc:1:main:7", "x")

    assert runtime.status("dc:1:main:7").history_turns == 2
    assert runtime.status("dc:1:main:8").history_turns == 0
    assert runtime.status("dc:1:main:8").provider == "a"
