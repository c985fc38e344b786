#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - LLM Gateway Tests
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""Tests for the chat-completion provider and call_ai()."""

import json

import pytest
import requests

from daily_assistant.config import AppConfig
from daily_assistant.llm import (
    DEFAULT_BASE_URL,
    AIRequest,
    ChatCompletionProvider,
    ProviderError,
    ResponseError,
    TransportError,
    call_ai,
    resolve_base_url,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(body)

    def json(self):
        return json.loads(self.text)


def reply(content, finish_reason="stop"):
    return {
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": finish_reason}],
        "usage": {"total_tokens": 42},
    }


@pytest.fixture
def calls(monkeypatch):
    """Record Session.post calls and answer from a queue of responses."""
    recorded = {"requests": [], "responses": [], "sleeps": []}

    def fake_post(self, url, json=None, timeout=None, **kwargs):
        recorded["requests"].append({"url": url, "json": json, "headers": dict(self.headers), "timeout": timeout})
        response = recorded["responses"].pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr("requests.Session.post", fake_post)
    monkeypatch.setattr("daily_assistant.llm.base.time.sleep", lambda s: recorded["sleeps"].append(s))
    return recorded


# ══════════════════════════════════════════════════════════════════════════════
# BASE URL RESOLUTION
# ══════════════════════════════════════════════════════════════════════════════


class TestResolveBaseUrl:
    def test_explicit_wins(self):
        assert resolve_base_url("deepseek", "http://localhost:8000/v1") == "http://localhost:8000/v1"

    def test_known_provider(self):
        assert resolve_base_url("deepseek") == "https://api.deepseek.com/v1"
        assert resolve_base_url("OpenAI") == DEFAULT_BASE_URL

    def test_unknown_provider_falls_back(self):
        assert resolve_base_url("mystery") == DEFAULT_BASE_URL

    def test_call_ai_uses_provider_default(self, calls, settings):
        calls["responses"].append(FakeResponse(body=reply("ok")))
        config = AppConfig(api_key="k", provider="deepseek", model="deepseek-chat")

        call_ai(AIRequest.from_config(config, "p"), settings)

        assert calls["requests"][0]["url"] == "https://api.deepseek.com/v1/chat/completions"
        assert calls["requests"][0]["json"]["model"] == "deepseek-chat"


# ══════════════════════════════════════════════════════════════════════════════
# PROVIDER
# ══════════════════════════════════════════════════════════════════════════════


class TestChatCompletionProvider:
    def test_request_shape(self, calls):
        calls["responses"].append(FakeResponse(body=reply("Summary")))

        with ChatCompletionProvider("https://llm.test/v1/", "sk-abc", "gpt-4o", timeout=7) as provider:
            response = provider.complete("hello")

        request = calls["requests"][0]
        assert request["url"] == "https://llm.test/v1/chat/completions"
        assert request["headers"]["Authorization"] == "Bearer sk-abc"
        assert request["json"]["model"] == "gpt-4o"
        assert request["json"]["messages"] == [{"role": "user", "content": "hello"}]
        assert request["json"]["temperature"] == 0.7
        assert request["timeout"] == 7

        assert response.text == "Summary"
        assert response.total_tokens == 42
        assert not response.hit_token_limit

    def test_error_field_raises(self, calls):
        calls["responses"].append(FakeResponse(401, {"error": {"message": "Incorrect API key provided"}}))

        provider = ChatCompletionProvider("https://llm.test/v1", "bad", "gpt-4o")
        with pytest.raises(ProviderError) as exc:
            provider.complete("hello")

        assert "Incorrect API key provided" in str(exc.value)
        assert exc.value.retryable is False
        assert exc.value.status_code == 401

    def test_unexpected_schema_returns_raw_body(self, calls):
        calls["responses"].append(FakeResponse(body={"output": "something else"}))

        response = ChatCompletionProvider("https://llm.test/v1", "k", "m").complete("hello")
        assert json.loads(response.text) == {"output": "something else"}

    def test_invalid_json(self, calls):
        calls["responses"].append(FakeResponse(200, text="<html>gateway</html>"))

        with pytest.raises(ResponseError) as exc:
            ChatCompletionProvider("https://llm.test/v1", "k", "m").complete("hello")
        assert exc.value.retryable is False

    def test_transport_error(self, calls):
        calls["responses"].append(requests.ConnectionError("refused"))

        with pytest.raises(TransportError) as exc:
            ChatCompletionProvider("https://llm.test/v1", "k", "m").complete("hello")
        assert exc.value.retryable is True

    def test_finish_reason_length(self, calls):
        calls["responses"].append(FakeResponse(body=reply("cut", finish_reason="length")))
        assert ChatCompletionProvider("https://llm.test/v1", "k", "m").complete("x").hit_token_limit


# ══════════════════════════════════════════════════════════════════════════════
# CALL_AI
# ══════════════════════════════════════════════════════════════════════════════


class TestCallAi:
    def test_success(self, calls, settings):
        calls["responses"].append(FakeResponse(body=reply("Daily review")))

        request = AIRequest(provider="openai", api_key="sk", model="gpt-4o", prompt="p", base_url="https://llm.test/v1")
        assert call_ai(request, settings) == "Daily review"
        assert len(calls["requests"]) == 1

    def test_retries_503_then_succeeds(self, calls, settings):
        settings.retry_delay = 1.0
        calls["responses"].extend([FakeResponse(503, text="busy"), FakeResponse(body=reply("ok"))])

        request = AIRequest(provider="openai", api_key="sk", model="gpt-4o", prompt="p")
        assert call_ai(request, settings) == "ok"
        assert len(calls["requests"]) == 2
        assert calls["sleeps"] == [1.0]
        assert calls["requests"][0]["url"] == DEFAULT_BASE_URL + "/chat/completions"

    def test_gives_up_after_max_retries(self, calls, settings):
        calls["responses"].extend([FakeResponse(502, text="bad gateway")] * 3)

        request = AIRequest(provider="openai", api_key="sk", model="gpt-4o", prompt="p")
        with pytest.raises(ResponseError):
            call_ai(request, settings)
        assert len(calls["requests"]) == settings.max_retries + 1

    def test_error_payload_not_retried(self, calls, settings):
        calls["responses"].extend([FakeResponse(400, {"error": {"message": "bad model"}}), FakeResponse(body=reply("x"))])

        request = AIRequest(provider="openai", api_key="sk", model="nope", prompt="p")
        with pytest.raises(ProviderError):
            call_ai(request, settings)
        assert len(calls["requests"]) == 1

    def test_from_config(self):
        config = AppConfig(api_key="sk", provider="gemini", model="gemini-1.5-pro", base_url=None)
        request = AIRequest.from_config(config, "prompt")
        assert request.provider == "gemini"
        assert request.prompt == "prompt"
        assert request.base_url is None
