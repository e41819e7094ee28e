"""
Protocol stats: bundle ETH price merged with factory totals.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..adapters import SubgraphClient
from ..caching import KeyedTTLCache
from .formatting import iso_timestamp
from .resource import ResilientResource, ResourceResult

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


STATS_NAME = "Prism DEX Stats"
FACTORY_FIELDS = (
    "totalValueLockedUSD",
    "totalValueLockedETH",
    "volumeUSD24h",
    "feesUSD24h",
    "apr24h",
    "poolCount",
    "txCount",
)


class StatsAggregator:
    def __init__(
        self,
        subgraph: SubgraphClient,
        cache: KeyedTTLCache,
        *,
        ttl: float = 60,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.subgraph = subgraph
        self.resource = ResilientResource("stats", self.build_stats, cache, ttl, metrics=metrics)

    async def get_stats(self) -> ResourceResult:
        return await self.resource.get()

    async def build_stats(self) -> Dict[str, Any]:
        results = await asyncio.gather(
            self.subgraph.get_bundle(),
            self.subgraph.get_factory(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        bundle, factory = results
        body: Dict[str, Any] = {
            "name": STATS_NAME,
            "timestamp": iso_timestamp(),
            "ethPriceUSD": (bundle or {}).get("ethPriceUSD") or "0",
        }
        for field in FACTORY_FIELDS:
            body[field] = factory.get(field)
        return body
