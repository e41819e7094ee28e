"""
Unit tests for Gateway main service.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.aggregation.known_tokens import ETH_LOGO, WETH_ADDRESS
from service_gateway.app.main import GatewayService, cache_control, create_app
from service_gateway.app.storage import FileCacheStore, MemoryKeyValueStore, RedisKeyValueStore
from shared.errors import ConfigurationError


TOKEN_1 = "0x" + "0" * 39 + "1"


class UnreachableStore(MemoryKeyValueStore):
    async def ping(self):
        return False


class TestGatewayService:
    """Test cases for GatewayService."""

    @pytest.fixture
    def build_client(self, gateway_config, http_client):
        def _build(rate_limit_store=None, **overrides):
            app = create_app(
                config=gateway_config(**overrides),
                rate_limit_store=rate_limit_store,
                cache_store=MemoryKeyValueStore(),
                http_client=http_client,
            )
            return TestClient(app)

        return _build

    @pytest.fixture
    def client(self, build_client):
        return build_client(rate_limit_store=MemoryKeyValueStore())

    @pytest.fixture(autouse=True)
    def seed(self, upstreams, make_token, make_pool):
        upstreams.tokens = [make_token(1), make_token(2)]
        upstreams.pools = [make_pool(1), make_pool(2)]
        upstreams.logo_payload = {
            "success": True,
            "tokens": [{"wrapperAddress": TOKEN_1, "logoUrl": "https://img.test/1.png"}],
        }

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["status"] == "ok"
        assert data["chain"] == {"id": 6343, "name": "MegaETH Testnet"}
        assert set(data["circuit_breakers"]) == {"subgraph", "rpc", "token_metadata"}
        assert "RateLimit-Limit" not in response.headers

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_eth_price(self, client):
        response = client.get("/api/eth-price")

        assert response.status_code == 200
        assert response.json() == {"ethPriceUSD": "2"}
        assert response.headers["Cache-Control"] == "public, max-age=0, s-maxage=30, stale-while-revalidate=30"
        assert response.headers["RateLimit-Limit"] == "120"
        assert response.headers["RateLimit-Remaining"] == "119"

    def test_eth_price_without_rpc(self, build_client, upstreams):
        client = build_client(rpc_http_url=None)

        response = client.get("/api/eth-price")

        assert response.json() == {"ethPriceUSD": "3000"}
        assert upstreams.calls_to("rpc.test") == []

    def test_token_list(self, client):
        response = client.get("/tokenlist.json")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Prism DEX Token List"
        assert [token["address"] for token in data["tokens"]] == [TOKEN_1, "0x" + "0" * 39 + "2"]
        assert data["tokens"][0]["logoURI"] == f"/api/tokens/logo?tokenAddress={TOKEN_1}"
        assert response.headers["Cache-Control"] == cache_control(300)

    def test_pools(self, client):
        response = client.get("/pools.json")

        assert response.status_code == 200
        assert response.json()["name"] == "Prism DEX Pools"
        assert len(response.json()["pools"]) == 2
        assert response.headers["Cache-Control"] == cache_control(300)

    def test_stats(self, client):
        response = client.get("/stats.json")

        assert response.status_code == 200
        assert response.json()["ethPriceUSD"] == "3120.5"
        assert response.headers["Cache-Control"] == cache_control(60)

    def test_stats_unavailable(self, client, upstreams):
        upstreams.subgraph_status = 500

        response = client.get("/stats.json")

        assert response.status_code == 503
        assert response.json()["code"] == "UPSTREAM_UNAVAILABLE"

    def test_stats_without_subgraph_endpoint(self, build_client):
        client = build_client(subgraph_endpoint=None)

        response = client.get("/stats.json")

        assert response.status_code == 500
        assert response.json()["code"] == "CONFIGURATION_ERROR"
        assert response.json()["details"] == {"setting": "PRISM_SUBGRAPH_ENDPOINT"}

    def test_resources_are_cached(self, client, upstreams):
        client.get("/pools.json")
        client.get("/pools.json")

        assert len(upstreams.calls_to("subgraph.test")) == 1

    def test_logo_redirect_for_known_token(self, client):
        response = client.get(f"/api/tokens/logo?tokenAddress={WETH_ADDRESS}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == ETH_LOGO

    def test_logo_redirect_from_metadata(self, client):
        response = client.get(f"/api/tokens/logo?tokenAddress={TOKEN_1.upper().replace('0X', '0x')}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "https://img.test/1.png"

    @pytest.mark.parametrize("query", ["", "?tokenAddress=0x123", "?tokenAddress=nonsense"])
    def test_logo_bad_address(self, client, query):
        response = client.get(f"/api/tokens/logo{query}", follow_redirects=False)

        assert response.status_code == 400
        assert response.json()["code"] == "CLIENT_ERROR"

    def test_logo_not_found(self, client):
        address = "0x" + "0" * 39 + "9"
        response = client.get(f"/api/tokens/logo?tokenAddress={address}", follow_redirects=False)

        assert response.status_code == 404

    def test_readyz_ok(self, client):
        response = client.get("/readyz")

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["stores"] == {"cache": True, "rate_limit": True}
        assert response.json()["chain"] == {"id": 6343, "name": "MegaETH Testnet"}
        assert response.headers["Cache-Control"] == "no-store, max-age=0"

    def test_readyz_unavailable(self, client, upstreams):
        upstreams.factory = None

        response = client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["ok"] is False
        assert response.headers["Cache-Control"] == "no-store, max-age=0"

    def test_readyz_reports_unreachable_limiter_store_when_failing_open(self, build_client):
        client = build_client(rate_limit_store=UnreachableStore())

        response = client.get("/readyz")

        assert response.status_code == 200
        assert response.json()["stores"] == {"cache": True, "rate_limit": False}

    def test_readyz_fails_on_unreachable_limiter_store_when_failing_closed(self, build_client):
        client = build_client(rate_limit_store=UnreachableStore(), rate_limit_fail_open=False)

        response = client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["ok"] is False

    def test_readyz_without_limiter(self, build_client):
        response = build_client().get("/readyz")

        assert response.json()["stores"] == {"cache": True, "rate_limit": None}

    def test_shared_http_client_keeps_upstream_timeouts(self, client, upstreams):
        client.get("/api/eth-price")
        client.get("/stats.json")
        client.get("/tokenlist.json")

        def read_timeouts(host):
            return {request.extensions["timeout"]["read"] for request in upstreams.calls_to(host)}

        assert read_timeouts("rpc.test") == {5.0}
        assert read_timeouts("metadata.test") == {5.0}
        assert read_timeouts("subgraph.test") == {30.0}

    def test_rate_limit_denial(self, build_client):
        client = build_client(rate_limit_store=MemoryKeyValueStore(), rate_limit_requests=2)

        assert client.get("/api/eth-price").status_code == 200
        assert client.get("/api/eth-price").status_code == 200
        response = client.get("/api/eth-price")

        assert response.status_code == 429
        assert response.json() == {"success": False, "error": "rate limit exceeded"}
        assert response.headers["RateLimit-Remaining"] == "0"
        assert "X-Request-ID" in response.headers
        assert client.get("/health").status_code == 200

    def test_no_limiter_without_store(self, build_client):
        response = build_client().get("/api/eth-price")

        assert response.status_code == 200
        assert "RateLimit-Limit" not in response.headers

    def test_metrics_endpoint(self, client):
        client.get("/api/eth-price")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "rate_limit_decisions_total" in response.text
        assert "upstream_aggregations_total" in response.text


class TestStoreSelection:
    """Backend selection from configuration."""

    def test_redis_url_enables_shared_stores(self, gateway_config):
        service = GatewayService(gateway_config(redis_url="redis://localhost:6379/0", cache_backend="auto"))

        assert isinstance(service.rate_limit_store, RedisKeyValueStore)
        assert service.cache_store is service.rate_limit_store
        assert service.rate_limiter is not None

    def test_file_cache_without_redis(self, gateway_config, tmp_path):
        service = GatewayService(gateway_config(cache_backend="auto", cache_dir=str(tmp_path)))

        assert isinstance(service.cache_store, FileCacheStore)
        assert service.rate_limiter is None

    def test_redis_backend_requires_url(self, gateway_config):
        with pytest.raises(ConfigurationError):
            GatewayService(gateway_config(cache_backend="redis"))
