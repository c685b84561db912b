"""
Client-side poller for a dispatched generation.

Polls GET /generate/{task_id}?model=X at a fixed interval until the task is
completed or failed, or until the hard ceiling elapses (outcome "timeout").
Cancelling the awaiting coroutine cancels the in-flight request and the sleep.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from genr8.core.config import settings

logger = logging.getLogger(__name__)

COMPLETED = "completed"
FAILED = "failed"
TIMEOUT = "timeout"


class StatusQueryError(Exception):
    """Status endpoint answered with an error (status_code None for transport errors)."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class PollOutcome:
    state: str
    result_urls: list[str] = field(default_factory=list)
    error: str | None = None
    attempts: int = 0
    payload: dict | None = None


def inferred_failure(body: Any) -> str | None:
    """An error body can still describe a terminal failure (e.g. content policy)."""
    if not isinstance(body, dict):
        return None
    message = " ".join(str(body.get(k) or "") for k in ("error", "message", "errorMessage"))
    if body.get("state") == FAILED or "flagged" in message.lower():
        return message.strip() or "Generation failed"
    return None


class GatewayStatusClient:
    """Fetches task status from a running gateway."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def fetch(self, task_id: str, model: str) -> dict:
        try:
            response = await self._client.get(f"/generate/{task_id}", params={"model": model})
        except httpx.HTTPError as e:
            raise StatusQueryError(f"status request failed: {e}") from e
        try:
            body = response.json()
        except ValueError:
            body = response.text
        if response.status_code >= 400:
            raise StatusQueryError(
                f"status endpoint returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return body

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GatewayStatusClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


class GenerationPoller:
    def __init__(
        self,
        fetch_status: Callable[[str, str], Awaitable[dict]],
        interval: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self.fetch_status = fetch_status
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.timeout = timeout if timeout is not None else settings.poll_timeout_seconds

    async def wait(self, task_id: str, model: str) -> PollOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        attempts = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return PollOutcome(state=TIMEOUT, error="Generation timed out", attempts=attempts)

            attempts += 1
            try:
                payload = await asyncio.wait_for(self.fetch_status(task_id, model), timeout=remaining)
            except asyncio.TimeoutError:
                return PollOutcome(state=TIMEOUT, error="Generation timed out", attempts=attempts)
            except StatusQueryError as e:
                failure = inferred_failure(e.body)
                if failure:
                    return PollOutcome(state=FAILED, error=failure, attempts=attempts)
                logger.warning("poll_status_error", extra={"task_id": task_id, "error": str(e)})
            else:
                state = payload.get("state")
                if state == COMPLETED:
                    return PollOutcome(
                        state=COMPLETED,
                        result_urls=list(payload.get("resultUrls") or []),
                        attempts=attempts,
                        payload=payload,
                    )
                if state == FAILED:
                    return PollOutcome(
                        state=FAILED,
                        error=payload.get("error") or "Generation failed",
                        attempts=attempts,
                        payload=payload,
                    )

            remaining = deadline - loop.time()
            if remaining <= 0:
                return PollOutcome(state=TIMEOUT, error="Generation timed out", attempts=attempts)
            await asyncio.sleep(min(self.interval, remaining))


async def wait_for_generation(base_url: str, task_id: str, model: str, **poller_kwargs) -> PollOutcome:
    async with GatewayStatusClient(base_url) as client:
        return await GenerationPoller(client.fetch, **poller_kwargs).wait(task_id, model)
