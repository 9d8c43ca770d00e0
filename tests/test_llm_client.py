"""Tests for the AI client adapter and provider."""

import json
import time

import httpx
import pytest

from report_engine.errors import GenerationTimeout, UnexpectedError
from report_engine.services.llm_client import (
    AIClientAdapter,
    CompletionRequest,
    OpenRouterProvider,
    StreamedResponse,
    WholeResponse,
    is_timeout_error,
)
from tests.conftest import FakeProvider


def make_adapter(provider, **kwargs):
    return AIClientAdapter(
        provider,
        system_prompt="Respond with JSON.",
        simple_model="test/simple",
        complex_model="test/complex",
        retry_delay_seconds=0,
        **kwargs,
    )


def test_whole_response():
    provider = FakeProvider('{"summary": "ok"}')
    assert make_adapter(provider).complete("prompt") == '{"summary": "ok"}'
    assert provider.calls == 1


def test_streamed_chunks_are_concatenated():
    provider = FakeProvider(['{"summary": ', '"streamed"', "}"])
    assert make_adapter(provider).complete("prompt") == '{"summary": "streamed"}'


def test_retries_once_after_timeout():
    provider = FakeProvider(httpx.ReadTimeout("timed out"), "recovered")
    assert make_adapter(provider).complete("prompt") == "recovered"
    assert provider.calls == 2


def test_timeout_on_every_attempt():
    provider = FakeProvider(httpx.ReadTimeout("timed out"))
    with pytest.raises(GenerationTimeout):
        make_adapter(provider).complete("prompt")
    assert provider.calls == 2


def test_no_retry_when_disabled():
    provider = FakeProvider(httpx.ReadTimeout("timed out"), "never reached")
    with pytest.raises(GenerationTimeout):
        make_adapter(provider).complete("prompt", allow_retry=False)
    assert provider.calls == 1


def test_timeout_detected_from_message():
    provider = FakeProvider(RuntimeError("cURL error 28: Operation timed out"), "recovered")
    assert make_adapter(provider).complete("prompt") == "recovered"
    assert provider.calls == 2


def test_other_errors_are_not_retried():
    provider = FakeProvider(ValueError("invalid api key"), "never reached")
    with pytest.raises(UnexpectedError):
        make_adapter(provider).complete("prompt")
    assert provider.calls == 1


def test_request_carries_settings():
    provider = FakeProvider("{}")
    adapter = make_adapter(provider, max_tokens=100, temperature=0.2, timeout_seconds=30, stream=False)
    adapter.complete("prompt", complex_report=True)

    request = provider.requests[0]
    assert request.model == "test/complex"
    assert request.system_prompt == "Respond with JSON."
    assert request.user_prompt == "prompt"
    assert request.max_tokens == 100
    assert request.temperature == 0.2
    assert request.timeout_seconds == 30
    assert request.stream is False


def test_timeout_override():
    provider = FakeProvider("{}")
    make_adapter(provider, timeout_seconds=600).complete("prompt", timeout_seconds=5)
    assert provider.requests[0].timeout_seconds == 5


def test_is_timeout_error():
    assert is_timeout_error(httpx.ConnectTimeout("connect"))
    assert is_timeout_error(TimeoutError())
    assert is_timeout_error(RuntimeError("Gateway Timeout"))
    assert not is_timeout_error(RuntimeError("bad request"))


def test_response_variants_iterate_text():
    assert list(WholeResponse("abc").iter_text()) == ["abc"]
    assert list(StreamedResponse(iter(["a", "b"])).iter_text()) == ["a", "b"]


def _request(stream):
    return CompletionRequest(system_prompt="sys", user_prompt="hi", model="m", stream=stream)


def test_openrouter_whole_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["title"] = request.headers.get("X-Title")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": '{"a": 1}'}}]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    provider = OpenRouterProvider(client, api_key="key", base_url="https://example.test/v1", site_name="Reports")

    response = provider.chat(_request(stream=False))

    assert isinstance(response, WholeResponse)
    assert response.text == '{"a": 1}'
    assert seen["auth"] == "Bearer key"
    assert seen["title"] == "Reports"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "sys"}
    assert seen["body"]["stream"] is False


def test_openrouter_streamed_response():
    events = [
        ": keep-alive",
        "data: " + json.dumps({"choices": [{"delta": {"content": '{"a": '}}]}),
        "data: " + json.dumps({"choices": [{"delta": {"content": "1}"}}]}),
        "data: [DONE]",
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content="\n\n".join(events).encode())

    client = httpx.Client(transport=httpx.MockTransport(handler))
    provider = OpenRouterProvider(client, api_key="key", base_url="https://example.test/v1")

    response = provider.chat(_request(stream=True))

    assert isinstance(response, StreamedResponse)
    assert "".join(response.iter_text()) == '{"a": 1}'


def test_openrouter_http_error_is_unexpected():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    provider = OpenRouterProvider(client, api_key="key", base_url="https://example.test/v1")
    adapter = AIClientAdapter(provider, system_prompt="", simple_model="m", stream=False, retry_delay_seconds=0)

    with pytest.raises(UnexpectedError):
        adapter.complete("prompt")


def trickle(chunks, delay):
    for chunk in chunks:
        time.sleep(delay)
        yield chunk


def test_trickling_stream_hits_total_deadline():
    calls = []
    events = [
        "data: " + json.dumps({"choices": [{"delta": {"content": part}}]}) + "\n\n"
        for part in ['{"summary": ', '"o', "k", '"', "}"]
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=trickle([e.encode() for e in events], 0.1))

    client = httpx.Client(transport=httpx.MockTransport(handler))
    provider = OpenRouterProvider(client, api_key="key", base_url="https://example.test/v1")
    adapter = make_adapter(provider)

    with pytest.raises(GenerationTimeout):
        adapter.complete("prompt", timeout_seconds=0.25, allow_retry=False)
    assert len(calls) == 1

    with pytest.raises(GenerationTimeout):
        adapter.complete("prompt", timeout_seconds=0.25)
    assert len(calls) == 3


def test_trickling_whole_body_hits_total_deadline():
    body = json.dumps({"choices": [{"message": {"content": '{"summary": "ok"}'}}]}).encode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=trickle([body[i:i + 8] for i in range(0, len(body), 8)], 0.05))

    client = httpx.Client(transport=httpx.MockTransport(handler))
    provider = OpenRouterProvider(client, api_key="key", base_url="https://example.test/v1")
    adapter = make_adapter(provider, stream=False)

    with pytest.raises(GenerationTimeout):
        adapter.complete("prompt", timeout_seconds=0.2, allow_retry=False)


def test_slow_chunks_from_any_provider_hit_deadline():
    class SlowProvider:
        def chat(self, request):
            return StreamedResponse(trickle(['{"summary": ', '"ok"', "}"], 0.1))

    with pytest.raises(GenerationTimeout):
        make_adapter(SlowProvider()).complete("prompt", timeout_seconds=0.15, allow_retry=False)


def test_stream_within_deadline_succeeds():
    provider = FakeProvider(['{"summary": ', '"ok"', "}"])
    assert make_adapter(provider).complete("prompt", timeout_seconds=5) == '{"summary": "ok"}'
