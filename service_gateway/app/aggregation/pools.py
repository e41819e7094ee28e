"""
Pool list aggregation over the paginated subgraph ``pools`` collection.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shared.logging import get_logger

from ..adapters import SubgraphClient
from ..adapters.subgraph_client import POOLS_PAGE_QUERY
from ..caching import KeyedTTLCache
from .formatting import iso_timestamp, normalize_address
from .pagination import paginate
from .resource import ResilientResource, ResourceResult

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


POOL_LIST_NAME = "Prism DEX Pools"


class PoolListAggregator:
    def __init__(
        self,
        subgraph: SubgraphClient,
        cache: KeyedTTLCache,
        *,
        ttl: float = 300,
        page_size: int = 1000,
        max_rows: int = 10000,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.subgraph = subgraph
        self.page_size = page_size
        self.max_rows = max_rows
        self.logger = get_logger("gateway.pool_list")
        self.resource = ResilientResource("pools", self.build_pool_list, cache, ttl, metrics=metrics)

    async def get_pool_list(self) -> ResourceResult:
        return await self.resource.get()

    async def fetch_pools(self) -> List[Dict[str, Any]]:
        async def fetch_page(first: int, skip: int) -> List[Dict[str, Any]]:
            return await self.subgraph.fetch_page(POOLS_PAGE_QUERY, "pools", first, skip)

        return await paginate(fetch_page, page_size=self.page_size, max_rows=self.max_rows)

    async def build_pool_list(self) -> Dict[str, Any]:
        raw_pools = await self.fetch_pools()

        # pool ids are contract addresses; anything else is malformed
        pools = [pool for pool in raw_pools if normalize_address(pool.get("id")) is not None]
        if len(pools) != len(raw_pools):
            self.logger.warning("Dropped malformed pools", dropped=len(raw_pools) - len(pools))

        return {
            "name": POOL_LIST_NAME,
            "timestamp": iso_timestamp(),
            "pools": pools,
        }
