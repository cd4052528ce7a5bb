"""Anthropic Messages API client.

One request per call, no retry. Failures are classified so the CLI can tell
a missing key from a slow network from an API-side rejection.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal

from release_ai.core.config import DEFAULT_MODEL, ReleaseConfig
from release_ai.core.result import Err, Ok, Result
from release_ai.core.structured import as_obj_list, as_str_dict, get_str

from .http import HttpClient, HttpError, RealHttpClient

__all__ = [
    "ANTHROPIC_API_URL",
    "ANTHROPIC_VERSION",
    "AiError",
    "AnthropicClient",
]

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


@dataclass(frozen=True, slots=True)
class AiError:
    kind: Literal[
        "disabled",
        "missing_credential",
        "timeout",
        "transport",
        "api_error",
        "invalid_response",
        "no_commits",
    ]
    message: str
    hint: str | None = None


def _api_error_message(payload: object) -> str | None:
    """`error.message` of an API error body, if present."""
    data = as_str_dict(payload)
    if data is None:
        return None
    error = as_str_dict(data.get("error"))
    if error is None:
        return None
    return get_str(error, "message") or get_str(error, "type") or "unknown API error"


def _classify(error: HttpError) -> AiError:
    if error.timed_out:
        return AiError(
            kind="timeout",
            message="the AI API did not respond in time",
            hint=error.message,
        )
    if error.status == 0:
        return AiError(
            kind="transport",
            message=f"connection to the AI API failed: {error.message}",
        )

    detail: str | None = None
    if error.body:
        try:
            detail = _api_error_message(json.loads(error.body))
        except json.JSONDecodeError:
            detail = None
    return AiError(
        kind="api_error",
        message=f"AI API error: {detail or error.message}",
        hint=f"HTTP {error.status}",
    )


class AnthropicClient:
    """Single-prompt completions.

    Attributes:
        api_key: API key; None or empty fails every call before any request
        model: Model identifier sent with each request
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        http: HttpClient | None = None,
        url: str = ANTHROPIC_API_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = url
        self._http: HttpClient = http if http is not None else RealHttpClient()

    @classmethod
    def from_config(cls, config: ReleaseConfig, *, http: HttpClient | None = None) -> AnthropicClient:
        return cls(config.anthropic_api_key, model=config.model, http=http)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, prompt: str, *, max_tokens: int = 2048) -> Result[str, AiError]:
        """Send `prompt` as one user message and return the first text block."""
        if not self.api_key:
            return Err(
                AiError(
                    kind="missing_credential",
                    message="Anthropic API key not configured",
                    hint="Set ANTHROPIC_API_KEY or run `release-ai init`",
                )
            )

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload: dict[str, object] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        result = self._http.post_json(self.url, headers, payload)
        if isinstance(result, Err):
            return Err(_classify(result.error))

        data = result.value
        api_message = _api_error_message(data)
        if api_message is not None:
            return Err(AiError(kind="api_error", message=f"AI API error: {api_message}"))

        blocks = as_obj_list(data.get("content"))
        first = as_str_dict(blocks[0]) if blocks else None
        text = first.get("text") if first is not None else None
        if not isinstance(text, str):
            return Err(
                AiError(
                    kind="invalid_response",
                    message="AI API response has no text content",
                )
            )
        return Ok(text)
