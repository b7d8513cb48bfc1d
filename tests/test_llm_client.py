# tests/test_llm_client.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from tasktracker.core.errors import ConfigurationError, NetworkError
from tasktracker.core.preferences import AssistantPreferences
from tasktracker.llm.client import CloudInferenceClient, LocalInferenceClient, build_provider


def _local(handler, **kwargs) -> LocalInferenceClient:
    return LocalInferenceClient(
        model=kwargs.pop("model", "llama3.2"),
        base_url="http://ollama.test:11434",
        temperature=0.2,
        max_tokens=128,
        timeout_seconds=5.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _cloud(handler, *, api_key: str = "sk-test") -> CloudInferenceClient:
    return CloudInferenceClient(
        api_key=api_key,
        model="gpt-4o-mini",
        base_url="https://api.example.test/v1",
        temperature=0.2,
        max_tokens=128,
        timeout_seconds=5.0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


# ---- local ----


@pytest.mark.asyncio
async def test_local_posts_generate_payload() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "  hello  ", "done": True})

    answer = await _local(handler).ask("PROMPT")

    assert answer == "hello"
    assert seen["url"] == "http://ollama.test:11434/api/generate"
    assert seen["body"] == {
        "model": "llama3.2",
        "prompt": "PROMPT",
        "stream": False,
        "options": {"temperature": 0.2, "num_predict": 128},
    }


@pytest.mark.asyncio
async def test_local_http_error_status() -> None:
    client = _local(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(NetworkError, match="HTTP 500"):
        await client.ask("x")


@pytest.mark.asyncio
async def test_local_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError, match="Cannot reach"):
        await _local(handler).ask("x")


@pytest.mark.asyncio
async def test_local_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(NetworkError, match="timed out"):
        await _local(handler).ask("x")


@pytest.mark.asyncio
async def test_local_malformed_body() -> None:
    client = _local(lambda request: httpx.Response(200, json={"done": True}))
    with pytest.raises(NetworkError):
        await client.ask("x")

    client = _local(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(NetworkError, match="invalid JSON"):
        await client.ask("x")


@pytest.mark.asyncio
async def test_local_without_model() -> None:
    client = _local(lambda request: httpx.Response(200, json={"response": "x"}), model="  ")
    with pytest.raises(ConfigurationError):
        await client.ask("x")


# ---- cloud ----


@pytest.mark.asyncio
async def test_cloud_sends_bearer_and_chat_body() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion(" Two tasks are blocked. "))

    answer = await _cloud(handler).ask("PROMPT")

    assert answer == "Two tasks are blocked."
    assert seen["url"] == "https://api.example.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "gpt-4o-mini"
    assert seen["body"]["messages"] == [{"role": "user", "content": "PROMPT"}]
    assert seen["body"]["temperature"] == 0.2
    assert seen["body"]["max_tokens"] == 128


@pytest.mark.asyncio
async def test_cloud_server_error() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"error": {"message": "boom"}})

    with pytest.raises(NetworkError, match="HTTP 500"):
        await _cloud(handler).ask("x")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_cloud_rejected_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "bad key"}})

    with pytest.raises(NetworkError, match="401"):
        await _cloud(handler).ask("x")


@pytest.mark.asyncio
async def test_cloud_empty_content() -> None:
    with pytest.raises(NetworkError):
        await _cloud(lambda request: httpx.Response(200, json=_completion(""))).ask("x")


@pytest.mark.asyncio
async def test_cloud_without_key_never_sends() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_completion("x"))

    with pytest.raises(ConfigurationError):
        await _cloud(handler, api_key="").ask("x")
    assert calls == []


# ---- provider selection ----


def test_build_provider_picks_variant() -> None:
    settings = SimpleNamespace(
        ollama_base_url="http://ollama.test:11434/",
        cloud_base_url="https://api.example.test/v1",
        assistant_timeout_seconds=12.0,
        assistant_temperature=0.1,
        assistant_max_tokens=64,
    )

    local = build_provider(AssistantPreferences(local_model="mistral"), settings)
    assert isinstance(local, LocalInferenceClient)
    assert local.model == "mistral"
    assert local.base_url == "http://ollama.test:11434"
    assert local.max_tokens == 64

    cloud = build_provider(AssistantPreferences(provider="cloud", api_key="k", cloud_model="gpt-x"), settings)
    assert isinstance(cloud, CloudInferenceClient)
    assert cloud.model == "gpt-x"
    assert cloud.timeout_seconds == 12.0


# ---- malformed responses and client lifetime ----


@pytest.mark.asyncio
async def test_cloud_null_choices_is_network_error() -> None:
    body = _completion("x")
    body["choices"] = None
    with pytest.raises(NetworkError, match="no choices"):
        await _cloud(lambda request: httpx.Response(200, json=body)).ask("x")


@pytest.mark.asyncio
async def test_cloud_null_message_is_network_error() -> None:
    body = _completion("x")
    body["choices"][0]["message"] = None
    with pytest.raises(NetworkError):
        await _cloud(lambda request: httpx.Response(200, json=body)).ask("x")


@pytest.mark.asyncio
async def test_local_invalid_base_url_is_network_error() -> None:
    client = LocalInferenceClient(
        model="llama3.2",
        base_url="http://local\x00host:11434",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"response": "x"})),
    )
    with pytest.raises(NetworkError, match="Invalid local model server URL"):
        await client.ask("x")


@pytest.mark.asyncio
async def test_cloud_closes_http_client_after_each_question() -> None:
    ok = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_completion("hi"))))
    failing = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503, json={})))

    def client_with(http_client: httpx.AsyncClient) -> CloudInferenceClient:
        return CloudInferenceClient(
            api_key="sk-test",
            model="gpt-4o-mini",
            base_url="https://api.example.test/v1",
            http_client=http_client,
        )

    assert await client_with(ok).ask("x") == "hi"
    with pytest.raises(NetworkError):
        await client_with(failing).ask("x")

    assert ok.is_closed
    assert failing.is_closed
