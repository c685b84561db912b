"""
Base classes and types for generation provider adapters.
An adapter owns authentication and wire format of one model; it never retries
and never interprets task state (see normalizer).
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
import pybreaker

from genr8.services.errors import ConfigurationError, UpstreamProviderError
from genr8.utils.metrics import provider_request_duration_seconds


PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

TERMINAL_STATES = frozenset({COMPLETED, FAILED})


@dataclass
class TaskStatus:
    """Canonical task state, the only shape orchestration code looks at."""
    state: str
    result_urls: list[str] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None
    progress: float | None = None
    content_policy: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ProviderAdapter(ABC):
    """Base class for provider adapters."""

    model_id: str = ""
    media_type: str = "image"
    # Human readable key name used in ConfigurationError messages
    api_key_name: str = "KIE_AI_API_KEY"

    def __init__(self, config: dict) -> None:
        self.config = config
        self.api_key = config.get("api_key")
        self.api_url = (config.get("api_url") or "https://api.kie.ai/api/v1").rstrip("/")
        self.timeout = config.get("timeout", 30.0)
        self.callback_url = config.get("callback_url") or None
        self.transport = config.get("transport")
        self.breaker: pybreaker.CircuitBreaker | None = config.get("breaker")

    def is_available(self) -> bool:
        """Check if adapter is configured."""
        return bool(self.api_key)

    @abstractmethod
    def create_task(self, prompt: str, options: dict) -> str:
        """Submit a task and return the provider's task id."""

    @abstractmethod
    def query_task(self, external_task_id: str) -> dict:
        """Return the raw provider payload for a task."""

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _call(self, method: str, path: str, *, json: dict | None = None, params: dict | None = None) -> dict:
        if not self.is_available():
            raise ConfigurationError(f"{self.api_key_name} is not configured")
        if self.breaker is None:
            return self._send(method, path, json=json, params=params)
        try:
            return self.breaker.call(self._send, method, path, json=json, params=params)
        except pybreaker.CircuitBreakerError as e:
            raise UpstreamProviderError(
                f"{self.model_id} provider temporarily unavailable",
                status_code=503,
                body={"error": str(e)},
            ) from e

    def _send(self, method: str, path: str, *, json: dict | None = None, params: dict | None = None) -> dict:
        url = f"{self.api_url}{path}"
        started = time.monotonic()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, headers=self._headers(), json=json, params=params)
        except httpx.HTTPError as e:
            raise UpstreamProviderError(f"{self.model_id} request failed: {e}") from e
        finally:
            provider_request_duration_seconds.labels(model=self.model_id).observe(time.monotonic() - started)

        body = _response_body(response)
        if response.status_code >= 400:
            raise UpstreamProviderError(
                f"{self.model_id} API error: {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        if not isinstance(body, dict):
            raise UpstreamProviderError(
                f"{self.model_id} returned a non-JSON body",
                status_code=response.status_code,
                body=body,
            )
        # kie.ai wraps everything in {code, msg, data}; HTTP 200 can still carry an error code
        if body.get("code") != 200:
            message = body.get("msg") or body.get("message") or "unknown error"
            raise UpstreamProviderError(
                f"{self.model_id} task call failed: code {body.get('code')} - {message}",
                status_code=body.get("code") if isinstance(body.get("code"), int) else response.status_code,
                body=body,
            )
        return body

    def _task_id_from(self, body: dict) -> str:
        task_id = (body.get("data") or {}).get("taskId")
        if not task_id:
            raise UpstreamProviderError(
                f"{self.model_id} response has no taskId",
                status_code=200,
                body=body,
            )
        return task_id
