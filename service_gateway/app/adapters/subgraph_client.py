"""
GraphQL client for the DEX subgraph indexer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker
from shared.errors import ConfigurationError, UpstreamTransientError
from shared.logging import get_logger
from shared.retry import RetryConfig, retry_on_exception


UPSTREAM = "subgraph"

TOKENS_PAGE_QUERY = """
query TokensPage($first: Int!, $skip: Int!) {
  tokens(first: $first, skip: $skip, orderBy: id, orderDirection: asc) {
    id
    symbol
    name
    decimals
  }
}
""".strip()

POOLS_PAGE_QUERY = """
query PoolsPage($first: Int!, $skip: Int!) {
  pools(first: $first, skip: $skip, orderBy: id, orderDirection: asc) {
    id
    feeTier
    totalValueLockedUSD
    volumeUSD24h
    feesUSD24h
    apr24h
    lastSwapTimestamp
    token0 { id symbol name decimals }
    token1 { id symbol name decimals }
  }
}
""".strip()

BUNDLE_QUERY = """
query getBundle($first: Int!) {
  bundles(first: $first) {
    id
    ethPriceUSD
  }
}
""".strip()

FACTORY_QUERY = """
query getFactory {
  factories(first: 1) {
    id
    txCount
    swapCount
    poolCount
    totalValueLockedUSD
    totalValueLockedETH
    totalVolumeUSD
    totalFeesUSD
    volumeUSD24h
    feesUSD24h
    apr24h
  }
}
""".strip()


class SubgraphClient:
    """Posts GraphQL queries to the subgraph endpoint and unwraps ``data``."""

    def __init__(
        self,
        endpoint: Optional[str],
        *,
        timeout: float = 30.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint = endpoint
        self.logger = get_logger("gateway.subgraph_client")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(UPSTREAM, failure_threshold=5, recovery_timeout=30.0)
        self._owns_client = client is None
        self.timeout = timeout
        self._client = client or httpx.AsyncClient()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.endpoint:
            raise ConfigurationError("PRISM_SUBGRAPH_ENDPOINT")
        return await self.circuit_breaker.call(self._execute, query, variables or {})

    @retry_on_exception((UpstreamTransientError,), config=RetryConfig(max_attempts=2, base_delay=0.25, max_delay=1.0))
    async def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(
                self.endpoint,
                json={"query": query, "variables": variables},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTransientError(UPSTREAM, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamTransientError(UPSTREAM, str(exc) or exc.__class__.__name__) from exc

        if response.status_code != 200:
            self.logger.error(
                "Subgraph request failed",
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise UpstreamTransientError(
                UPSTREAM,
                f"unexpected status {response.status_code}",
                {"status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamTransientError(UPSTREAM, "malformed JSON payload") from exc

        if not isinstance(body, dict):
            raise UpstreamTransientError(UPSTREAM, "malformed GraphQL payload")
        if body.get("errors"):
            raise UpstreamTransientError(UPSTREAM, "GraphQL errors", {"errors": body["errors"]})

        data = body.get("data")
        if not isinstance(data, dict):
            raise UpstreamTransientError(UPSTREAM, "response has no data")
        return data

    async def fetch_page(self, query: str, entity: str, first: int, skip: int) -> List[Dict[str, Any]]:
        """Fetch one ``first``/``skip`` page of a collection query."""
        data = await self.query(query, {"first": first, "skip": skip})
        rows = data.get(entity)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise UpstreamTransientError(UPSTREAM, f"{entity} is not a list")
        return rows

    async def get_bundle(self) -> Optional[Dict[str, Any]]:
        data = await self.query(BUNDLE_QUERY, {"first": 1})
        bundles = data.get("bundles") or []
        return bundles[0] if bundles else None

    async def get_factory(self) -> Dict[str, Any]:
        data = await self.query(FACTORY_QUERY)
        factories = data.get("factories") or []
        if not factories:
            raise UpstreamTransientError(UPSTREAM, "missing factories[0]")
        return factories[0]
