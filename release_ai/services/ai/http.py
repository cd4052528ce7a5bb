"""HTTP client abstraction for the AI API.

This module provides:
- HttpClient: Protocol for JSON POST requests (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from release_ai import __version__
from release_ai.core.result import Err, Ok, Result
from release_ai.core.structured import as_str_dict

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
        timed_out: True when no response arrived within the timeout
        body: Response body of an HTTP error status, if any
    """

    url: str
    status: int
    message: str
    timed_out: bool = False
    body: str = ""

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    This abstraction allows injecting mock clients for testing,
    avoiding real network calls in unit tests.
    """

    def post_json(
        self,
        url: str,
        headers: Mapping[str, str],
        payload: Mapping[str, object],
    ) -> Result[dict[str, Any], HttpError]:
        """POST `payload` as JSON and parse the JSON object response.

        Returns:
            Ok with parsed JSON dict, or Err with HttpError
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON encoding and parsing
    - Timeouts, reported separately from other transport failures
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = f"release-ai/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _timeout_error(self, url: str) -> HttpError:
        return HttpError(
            url=url,
            status=0,
            message=f"Request timed out after {self.timeout:g}s",
            timed_out=True,
        )

    def post_json(
        self,
        url: str,
        headers: Mapping[str, str],
        payload: Mapping[str, object],
    ) -> Result[dict[str, Any], HttpError]:
        data = json.dumps(payload).encode("utf-8")
        all_headers = {
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
            **headers,
        }
        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method="POST")
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            try:
                body = e.read().decode("utf-8", errors="replace")
            except OSError:
                body = ""
            return Err(HttpError(url=url, status=e.code, message=str(e.reason), body=body))
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                return Err(self._timeout_error(url))
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(self._timeout_error(url))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        try:
            data_obj: object = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))
        parsed = as_str_dict(data_obj)
        if parsed is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        # Values are dynamic; preserve as Any for callers.
        return Ok(cast(dict[str, Any], parsed))


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are queued per URL and consumed in order; the last one is
    repeated once the queue runs dry.

    Usage:
        client = MockHttpClient()
        client.set_json("https://api.example.com/v1/messages", {"content": []})
        result = client.post_json("https://api.example.com/v1/messages", {}, {})
    """

    def __init__(self) -> None:
        self._responses: dict[str, list[dict[str, Any] | HttpError]] = {}
        self.calls: list[tuple[str, dict[str, str], dict[str, object]]] = []

    def set_json(self, url: str, response: dict[str, Any] | HttpError) -> None:
        """Queue a response for URL."""
        self._responses.setdefault(url, []).append(response)

    def post_json(
        self,
        url: str,
        headers: Mapping[str, str],
        payload: Mapping[str, object],
    ) -> Result[dict[str, Any], HttpError]:
        self.calls.append((url, dict(headers), dict(payload)))

        queue = self._responses.get(url)
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
