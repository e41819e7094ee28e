"""
Edge gateway service for the Prism DEX frontend.
"""

from typing import Any, Dict, Optional

import httpx
from fastapi import Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from shared.base_service import BaseService
from shared.circuit_breaker import CircuitBreakerManager
from shared.config import ServiceConfig, get_config
from shared.errors import ClientError, ConfigurationError, GatewayException

from .adapters import RpcClient, SubgraphClient, TokenMetadataClient
from .aggregation import EthPriceFeed, PoolListAggregator, StatsAggregator, TokenListAggregator
from .aggregation.formatting import iso_timestamp, normalize_address
from .caching import KeyedTTLCache
from .ratelimit import RateLimitMiddleware, SlidingWindowRateLimiter
from .storage import CacheStore, FileCacheStore, KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore


NO_STORE = "no-store, max-age=0"


def cache_control(ttl: int) -> str:
    """Shared-cache friendly header for TTL-cached resources."""
    return f"public, max-age=0, s-maxage={ttl}, stale-while-revalidate={ttl}"


class GatewayService(BaseService):
    """Edge gateway: rate limiting in front, resilient aggregated resources behind."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        rate_limit_store: Optional[KeyValueStore] = None,
        cache_store: Optional[CacheStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        config = config or get_config("gateway", 8000)

        # The limiter must exist before BaseService installs middleware
        self._redis_store: Optional[RedisKeyValueStore] = None
        self.rate_limit_store = rate_limit_store
        if self.rate_limit_store is None and config.rate_limit_enabled:
            self.rate_limit_store = self._get_redis_store(config)
        self.rate_limiter: Optional[SlidingWindowRateLimiter] = None
        if self.rate_limit_store is not None:
            self.rate_limiter = SlidingWindowRateLimiter(
                self.rate_limit_store,
                limit=config.rate_limit_requests,
                window_seconds=config.rate_limit_window_seconds,
                prefix=config.rate_limit_prefix,
                fail_open=config.rate_limit_fail_open,
            )

        super().__init__("gateway", config.port, config)

        self.cache_store = cache_store or self._create_cache_store()
        self.cache = KeyedTTLCache(self.cache_store, key_hash=self.config.cache_key_hash, metrics=self.metrics)

        self.circuit_breakers = CircuitBreakerManager()
        self.subgraph_client = SubgraphClient(
            self.config.subgraph_endpoint,
            timeout=self.config.batch_timeout_seconds,
            circuit_breaker=self.circuit_breakers.get_circuit_breaker("subgraph", 5, 30.0),
            client=http_client,
        )
        self.rpc_client = RpcClient(
            self.config.rpc_http_url,
            timeout=self.config.interactive_timeout_seconds,
            circuit_breaker=self.circuit_breakers.get_circuit_breaker("rpc", 5, 15.0),
            client=http_client,
        )
        self.token_metadata_client = TokenMetadataClient(
            self.config.token_metadata_url,
            timeout=self.config.interactive_timeout_seconds,
            circuit_breaker=self.circuit_breakers.get_circuit_breaker("token_metadata", 3, 60.0),
            client=http_client,
        )

        self.price_feed = EthPriceFeed(
            self.rpc_client,
            self.cache,
            oracle_address=self.config.oracle_address,
            ttl=self.config.price_cache_ttl,
            metrics=self.metrics,
        )
        self.token_list = TokenListAggregator(
            self.subgraph_client,
            self.token_metadata_client,
            self.cache,
            chain_id=self.config.chain_id,
            ttl=self.config.token_list_cache_ttl,
            page_size=self.config.page_size,
            max_rows=self.config.max_rows,
            metrics=self.metrics,
        )
        self.pool_list = PoolListAggregator(
            self.subgraph_client,
            self.cache,
            ttl=self.config.pool_list_cache_ttl,
            page_size=self.config.page_size,
            max_rows=self.config.max_rows,
            metrics=self.metrics,
        )
        self.stats = StatsAggregator(
            self.subgraph_client,
            self.cache,
            ttl=self.config.stats_cache_ttl,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.subgraph_client.close()
            await self.rpc_client.close()
            await self.token_metadata_client.close()
            await self.cache_store.close()
            if self.rate_limit_store is not None and self.rate_limit_store is not self.cache_store:
                await self.rate_limit_store.close()

        self._setup_gateway_routes()

        self.logger.info(
            "Gateway configured",
            rate_limiting=self.rate_limiter is not None,
            cache_backend=type(self.cache_store).__name__,
            subgraph_configured=bool(self.config.subgraph_endpoint),
            rpc_configured=self.rpc_client.configured,
        )

    def _get_redis_store(self, config: ServiceConfig) -> RedisKeyValueStore:
        if not config.redis_url:
            raise ConfigurationError("PRISM_REDIS_URL")
        if self._redis_store is None:
            self._redis_store = RedisKeyValueStore(config.redis_url)
        return self._redis_store

    def _create_cache_store(self) -> CacheStore:
        backend = self.config.resolved_cache_backend()
        if backend == "redis":
            return self._get_redis_store(self.config)
        if backend == "memory":
            return MemoryKeyValueStore()
        return FileCacheStore(self.config.cache_dir)

    def _setup_service_middleware(self):
        self.app.add_middleware(RateLimitMiddleware, rate_limiter=self.rate_limiter, metrics=self.metrics)

    def _health_details(self) -> Dict[str, Any]:
        return {
            "timestamp": iso_timestamp(),
            "chain": self._chain_info(),
            "circuit_breakers": self.circuit_breakers.get_all_states(),
        }

    def _chain_info(self) -> Dict[str, Any]:
        return {"id": self.config.chain_id, "name": self.config.chain_name}

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/api/eth-price")
        async def eth_price(response: Response):
            """Current ETH/USD price from the on-chain oracle."""
            result = await self.price_feed.get_price()
            response.headers["Cache-Control"] = cache_control(self.config.price_cache_ttl)
            return {"ethPriceUSD": result.value}

        @self.app.get("/tokenlist.json")
        async def token_list(response: Response):
            """Versioned token list for wallets and swap widgets."""
            result = await self.token_list.get_token_list()
            response.headers["Cache-Control"] = cache_control(self.config.token_list_cache_ttl)
            return result.value

        @self.app.get("/pools.json")
        async def pools(response: Response):
            result = await self.pool_list.get_pool_list()
            response.headers["Cache-Control"] = cache_control(self.config.pool_list_cache_ttl)
            return result.value

        @self.app.get("/stats.json")
        async def stats(response: Response):
            result = await self.stats.get_stats()
            response.headers["Cache-Control"] = cache_control(self.config.stats_cache_ttl)
            return result.value

        @self.app.get("/api/tokens/logo")
        async def token_logo(token_address: Optional[str] = Query(default=None, alias="tokenAddress")):
            """Redirect to the logo image of a token."""
            address = normalize_address(token_address)
            if address is None:
                raise ClientError("Invalid token address", {"tokenAddress": token_address})

            logo_url = await self.token_list.resolve_logo(address)
            if not logo_url:
                raise GatewayException("NOT_FOUND", "No logo for token", {"tokenAddress": address}, status_code=404)

            return RedirectResponse(logo_url, status_code=307)

        @self.app.get("/readyz")
        async def readiness_check():
            """Readiness: the subgraph must answer the factory query.

            Store reachability is reported alongside. An unreachable rate limit
            store only fails readiness under the fail-closed policy, where it
            would deny every request; cache store failures degrade to misses.
            """
            try:
                await self.subgraph_client.get_factory()
                ready = True
            except GatewayException as exc:
                self.logger.warning("Readiness probe failed", error=exc.message)
                ready = False

            stores = await self._store_status()
            if stores["rate_limit"] is False and not self.config.rate_limit_fail_open:
                ready = False

            return JSONResponse(
                status_code=200 if ready else 503,
                content={
                    "ok": ready,
                    "timestamp": iso_timestamp(),
                    "chain": self._chain_info(),
                    "stores": stores,
                },
                headers={"Cache-Control": NO_STORE},
            )

    async def _store_status(self) -> Dict[str, Optional[bool]]:
        cache_ok = await self.cache_store.ping()
        if self.rate_limit_store is None:
            rate_limit_ok = None
        elif self.rate_limit_store is self.cache_store:
            rate_limit_ok = cache_ok
        else:
            rate_limit_ok = await self.rate_limit_store.ping()
        if not cache_ok or rate_limit_ok is False:
            self.logger.warning("Store health check failed", cache=cache_ok, rate_limit=rate_limit_ok)
        return {"cache": cache_ok, "rate_limit": rate_limit_ok}


def create_app(**kwargs):
    """Create FastAPI application."""
    service = GatewayService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
