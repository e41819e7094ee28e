"""
Shared fixtures for gateway tests.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import get_config


SUBGRAPH_URL = "https://subgraph.test/graphql"
RPC_URL = "https://rpc.test/"
METADATA_URL = "https://metadata.test/api/tokens"


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstreams:
    """In-memory subgraph, RPC node and token-metadata service."""

    def __init__(self):
        self.tokens: List[Dict[str, Any]] = []
        self.pools: List[Dict[str, Any]] = []
        self.bundle: Optional[Dict[str, Any]] = {"id": "1", "ethPriceUSD": "3120.5"}
        self.factory: Optional[Dict[str, Any]] = {
            "id": "0xfactory",
            "txCount": "420",
            "swapCount": "400",
            "poolCount": "12",
            "totalValueLockedUSD": "1500000.5",
            "totalValueLockedETH": "480.25",
            "totalVolumeUSD": "9000000",
            "totalFeesUSD": "27000",
            "volumeUSD24h": "120000",
            "feesUSD24h": "360",
            "apr24h": "8.76",
        }
        self.rpc_results: Dict[str, Any] = {
            "0x50d25bcd": {"result": "0x0bebc200"},
            "0x313ce567": {"result": "0x08"},
        }
        self.logo_payload: Any = {"success": True, "tokens": []}
        self.subgraph_status = 200
        self.rpc_status = 200
        self.metadata_status = 200
        self.requests: List[httpx.Request] = []

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "subgraph.test":
            return self._subgraph(request)
        if host == "rpc.test":
            return self._rpc(request)
        if host == "metadata.test":
            if self.metadata_status != 200:
                return httpx.Response(self.metadata_status, text="unavailable")
            return httpx.Response(200, json=self.logo_payload)
        return httpx.Response(404)

    def _subgraph(self, request: httpx.Request) -> httpx.Response:
        if self.subgraph_status != 200:
            return httpx.Response(self.subgraph_status, text="bad gateway")

        body = json.loads(request.content)
        query = body["query"]
        variables = body.get("variables", {})

        if "pools(" in query:
            data = {"pools": self._page(self.pools, variables)}
        elif "tokens(" in query:
            data = {"tokens": self._page(self.tokens, variables)}
        elif "bundles(" in query:
            data = {"bundles": [self.bundle] if self.bundle else []}
        elif "factories(" in query:
            data = {"factories": [self.factory] if self.factory else []}
        else:
            return httpx.Response(200, json={"errors": [{"message": "unknown query"}]})
        return httpx.Response(200, json={"data": data})

    @staticmethod
    def _page(rows: List[Dict[str, Any]], variables: Dict[str, Any]) -> List[Dict[str, Any]]:
        skip = variables["skip"]
        return rows[skip:skip + variables["first"]]

    def _rpc(self, request: httpx.Request) -> httpx.Response:
        if self.rpc_status != 200:
            return httpx.Response(self.rpc_status, text="unavailable")
        body = json.loads(request.content)
        selector = body["params"][0]["data"]
        reply = {"jsonrpc": "2.0", "id": body["id"]}
        reply.update(self.rpc_results.get(selector, {"result": "0x"}))
        return httpx.Response(200, json=reply)


def _make_token(index: int, **overrides) -> Dict[str, Any]:
    token = {
        "id": f"0x{index:040x}",
        "symbol": f"TK{index}",
        "name": f"Token {index}",
        "decimals": "18",
    }
    token.update(overrides)
    return token


def _make_pool(index: int, **overrides) -> Dict[str, Any]:
    pool = {
        "id": f"0x{index + 0x1000:040x}",
        "feeTier": "3000",
        "totalValueLockedUSD": "1000.5",
        "volumeUSD24h": "250",
        "feesUSD24h": "0.75",
        "apr24h": "27.3",
        "lastSwapTimestamp": "1700000000",
        "token0": _make_token(1),
        "token1": _make_token(2),
    }
    pool.update(overrides)
    return pool


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest.fixture
def http_client(upstreams):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstreams.handle))


@pytest.fixture
def gateway_config():
    """Factory for gateway configs pointed at the fake upstreams."""

    def _make(**overrides):
        settings = {
            "cache_backend": "memory",
            "subgraph_endpoint": SUBGRAPH_URL,
            "rpc_http_url": RPC_URL,
            "token_metadata_url": METADATA_URL,
        }
        settings.update(overrides)
        return get_config("gateway", 8000, **settings)

    return _make


@pytest.fixture
def make_token():
    return _make_token


@pytest.fixture
def make_pool():
    return _make_pool
