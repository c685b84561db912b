"""
Per-provider circuit breakers on pybreaker, with state shared through Redis.

Every API worker and Celery process talking to one provider sees the same
breaker, so a provider outage stops dispatch everywhere at once. Client-side
rejections (bad prompt, insufficient credits) never count as failures.
"""
import logging
from datetime import datetime

import pybreaker
import redis

from genr8.core.config import settings
from genr8.services.errors import ConfigurationError, UpstreamProviderError
from genr8.utils.metrics import circuit_breaker_state


logger = logging.getLogger("circuit_breaker")

KEY_PREFIX = "genr8:cb"


def is_client_error(exc: Exception) -> bool:
    """4xx answers other than 429 describe the request, not the provider's health."""
    if not isinstance(exc, UpstreamProviderError) or exc.status_code is None:
        return False
    return 400 <= exc.status_code < 500 and exc.status_code != 429


class ProviderBreakerStorage(pybreaker.CircuitBreakerStorage):
    """Breaker state, failure count and open timestamp kept under genr8:cb:<name>:*."""

    def __init__(self, name: str, client: redis.Redis | None = None) -> None:
        super().__init__(name)
        self._name = name
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self._ttl = settings.cb_open_seconds * 2

    def _key(self, part: str) -> str:
        return f"{KEY_PREFIX}:{self._name}:{part}"

    @property
    def state(self) -> str:
        return self.client.get(self._key("state")) or pybreaker.STATE_CLOSED

    @state.setter
    def state(self, value: str) -> None:
        self.client.set(self._key("state"), value, ex=self._ttl)
        circuit_breaker_state.labels(name=self._name).set(1 if value == pybreaker.STATE_OPEN else 0)

    @property
    def counter(self) -> int:
        return int(self.client.get(self._key("failures")) or 0)

    def increment_counter(self) -> None:
        pipe = self.client.pipeline()
        pipe.incr(self._key("failures"))
        pipe.expire(self._key("failures"), settings.cb_open_seconds)
        pipe.execute()

    def reset_counter(self) -> None:
        self.client.delete(self._key("failures"))

    # Half-open needs a single success to close; nothing to persist.
    @property
    def success_counter(self) -> int:
        return 0

    def increment_success_counter(self) -> None:
        pass

    def reset_success_counter(self) -> None:
        pass

    @property
    def opened_at(self) -> datetime | None:
        value = self.client.get(self._key("opened_at"))
        return datetime.fromisoformat(value) if value else None

    @opened_at.setter
    def opened_at(self, value: datetime) -> None:
        self.client.set(self._key("opened_at"), value.isoformat(), ex=self._ttl)


class ProviderBreakerListener(pybreaker.CircuitBreakerListener):
    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state) -> None:
        logger.warning(
            "circuit_breaker_state_change",
            extra={
                "breaker_name": self.name,
                "old_state": getattr(old_state, "name", str(old_state)),
                "new_state": getattr(new_state, "name", str(new_state)),
            },
        )

    def failure(self, cb: pybreaker.CircuitBreaker, exc: Exception) -> None:
        logger.warning(
            "circuit_breaker_failure",
            extra={"breaker_name": self.name, "error": f"{type(exc).__name__}: {exc}"},
        )


_breakers: dict[str, pybreaker.CircuitBreaker] = {}


def get_circuit_breaker(name: str, storage: pybreaker.CircuitBreakerStorage | None = None) -> pybreaker.CircuitBreaker:
    """Get or create the breaker for one provider (name is "provider:<model id>")."""
    if name not in _breakers:
        _breakers[name] = pybreaker.CircuitBreaker(
            fail_max=settings.cb_failure_threshold,
            reset_timeout=settings.cb_open_seconds,
            state_storage=storage or ProviderBreakerStorage(name),
            listeners=[ProviderBreakerListener(name)],
            exclude=[ConfigurationError, is_client_error],
            name=name,
        )
    return _breakers[name]
