"""
Resilient resource: TTL cache in front, last-good fallback behind.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, TYPE_CHECKING

from shared.errors import UpstreamTransientError, UpstreamUnavailableError
from shared.logging import get_logger

from ..caching import KeyedTTLCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ResourceOutcome(str, Enum):
    FRESH = "fresh"
    CACHE = "cache"
    FALLBACK = "fallback"
    DEFAULT = "default"


@dataclass(frozen=True)
class ResourceResult:
    value: Any
    outcome: ResourceOutcome


class StaleFallbackState:
    """Last value produced by a fully successful aggregation."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.last_good_value: Any = None
        self.last_good_at: Optional[float] = None

    @property
    def has_value(self) -> bool:
        return self.last_good_at is not None

    def publish(self, value: Any) -> None:
        self.last_good_value = value
        self.last_good_at = self._clock()

    def age_seconds(self) -> Optional[float]:
        if self.last_good_at is None:
            return None
        return self._clock() - self.last_good_at


_NO_DEFAULT = object()


class ResilientResource:
    """
    One named upstream-backed value.

    ``get()`` serves a valid cache entry, or runs ``fetch`` and publishes the
    result as the new fallback. When ``fetch`` raises UpstreamTransientError
    the last good value is served regardless of its age; without one the
    ``default`` is returned if configured, otherwise UpstreamUnavailableError
    is raised. Other exceptions propagate untouched.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[Any]],
        cache: KeyedTTLCache,
        ttl: float,
        *,
        args: Sequence[Any] = (),
        default: Any = _NO_DEFAULT,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.name = name
        self.fetch = fetch
        self.cache = cache
        self.ttl = ttl
        self.args = tuple(args)
        self.default = default
        self.metrics = metrics
        self.fallback = StaleFallbackState()
        self.logger = get_logger("gateway.resource")

    async def get(self) -> ResourceResult:
        fetched = False

        async def compute() -> Any:
            nonlocal fetched
            value = await self.fetch()
            fetched = True
            return value

        try:
            value = await self.cache.get_or_compute(self.name, self.args, compute, self.ttl)
        except UpstreamTransientError as exc:
            return self._degrade(exc)

        if fetched:
            self.fallback.publish(value)
            return self._result(value, ResourceOutcome.FRESH)
        return self._result(value, ResourceOutcome.CACHE)

    def _degrade(self, exc: UpstreamTransientError) -> ResourceResult:
        if self.metrics is not None:
            self.metrics.increment_counter("upstream_errors_total", upstream=exc.upstream)

        if self.fallback.has_value:
            self.logger.warning(
                "Serving fallback value after upstream failure",
                resource=self.name,
                error=exc.message,
                age_seconds=round(self.fallback.age_seconds() or 0.0, 3),
            )
            return self._result(self.fallback.last_good_value, ResourceOutcome.FALLBACK)

        if self.default is not _NO_DEFAULT:
            self.logger.warning("Serving default value after upstream failure", resource=self.name, error=exc.message)
            return self._result(self.default, ResourceOutcome.DEFAULT)

        self.logger.error("Upstream failed with no fallback value", resource=self.name, error=exc.message)
        self._record("unavailable")
        raise UpstreamUnavailableError(self.name, cause=exc) from exc

    def _result(self, value: Any, outcome: ResourceOutcome) -> ResourceResult:
        self._record(outcome.value)
        return ResourceResult(value=value, outcome=outcome)

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("upstream_aggregations_total", resource=self.name, outcome=outcome)
