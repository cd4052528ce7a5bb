"""Tests for services/ai/client.py."""

from __future__ import annotations

import json
from pathlib import Path

from release_ai.core.config import ReleaseConfig
from release_ai.core.result import Err, Ok
from release_ai.services.ai.client import ANTHROPIC_API_URL, ANTHROPIC_VERSION, AnthropicClient
from release_ai.services.ai.http import HttpError, MockHttpClient


def _text_response(text: str) -> dict[str, object]:
    return {"content": [{"type": "text", "text": text}], "stop_reason": "end_turn"}


def _client(http: MockHttpClient, api_key: str | None = "sk-test") -> AnthropicClient:
    return AnthropicClient(api_key, model="test-model", http=http)


class TestComplete:
    def test_returns_first_text_block(self) -> None:
        http = MockHttpClient()
        http.set_json(ANTHROPIC_API_URL, _text_response("1.3.0"))

        assert _client(http).complete("which version?", max_tokens=100) == Ok("1.3.0")

        url, headers, payload = http.calls[0]
        assert url == ANTHROPIC_API_URL
        assert headers["x-api-key"] == "sk-test"
        assert headers["anthropic-version"] == ANTHROPIC_VERSION
        assert payload == {
            "model": "test-model",
            "max_tokens": 100,
            "messages": [{"role": "user", "content": "which version?"}],
        }

    def test_missing_key_sends_nothing(self) -> None:
        http = MockHttpClient()
        for key in (None, ""):
            result = _client(http, api_key=key).complete("hi")
            assert isinstance(result, Err)
            assert result.error.kind == "missing_credential"
        assert http.calls == []

    def test_timeout(self) -> None:
        http = MockHttpClient()
        http.set_json(
            ANTHROPIC_API_URL,
            HttpError(url=ANTHROPIC_API_URL, status=0, message="timed out", timed_out=True),
        )
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "timeout"

    def test_transport(self) -> None:
        http = MockHttpClient()
        http.set_json(
            ANTHROPIC_API_URL, HttpError(url=ANTHROPIC_API_URL, status=0, message="refused")
        )
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "transport"

    def test_api_error_message_from_body(self) -> None:
        http = MockHttpClient()
        body = json.dumps(
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )
        http.set_json(
            ANTHROPIC_API_URL,
            HttpError(url=ANTHROPIC_API_URL, status=529, message="", body=body),
        )
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "api_error"
        assert result.error.message == "AI API error: Overloaded"
        assert result.error.hint == "HTTP 529"

    def test_api_error_without_json_body(self) -> None:
        http = MockHttpClient()
        http.set_json(
            ANTHROPIC_API_URL,
            HttpError(url=ANTHROPIC_API_URL, status=502, message="Bad Gateway", body="<html>"),
        )
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.message == "AI API error: Bad Gateway"

    def test_error_field_in_success_body(self) -> None:
        http = MockHttpClient()
        http.set_json(ANTHROPIC_API_URL, {"error": {"message": "invalid model"}})
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "api_error"

    def test_missing_text(self) -> None:
        http = MockHttpClient()
        http.set_json(ANTHROPIC_API_URL, {"content": [{"type": "tool_use", "id": "x"}]})
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_response"

    def test_empty_content(self) -> None:
        http = MockHttpClient()
        http.set_json(ANTHROPIC_API_URL, {"content": []})
        result = _client(http).complete("hi")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_response"


def test_from_config(tmp_path: Path) -> None:
    config = ReleaseConfig(cwd=tmp_path, anthropic_api_key="sk-cfg", model="m-cfg")
    client = AnthropicClient.from_config(config, http=MockHttpClient())
    assert client.is_configured
    assert client.model == "m-cfg"
    assert not AnthropicClient.from_config(ReleaseConfig(cwd=tmp_path)).is_configured
