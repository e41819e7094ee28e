"""
JSON-RPC client for read-only contract calls.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker
from shared.errors import ConfigurationError, UpstreamTransientError
from shared.logging import get_logger


UPSTREAM = "rpc"
EMPTY_RESULTS = ("0x", "0x0")


class RpcClient:
    """Issues ``eth_call`` requests against the configured RPC endpoint."""

    def __init__(
        self,
        rpc_url: Optional[str],
        *,
        timeout: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.logger = get_logger("gateway.rpc_client")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(UPSTREAM, failure_threshold=5, recovery_timeout=15.0)
        self._owns_client = client is None
        self.timeout = timeout
        self._client = client or httpx.AsyncClient()

    @property
    def configured(self) -> bool:
        return bool(self.rpc_url)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def eth_call(self, to: str, data: str) -> str:
        """Return the hex result of a read-only call; empty results are failures."""
        if not self.rpc_url:
            raise ConfigurationError("PRISM_RPC_HTTP_URL")
        return await self.circuit_breaker.call(self._eth_call, to, data)

    async def _eth_call(self, to: str, data: str) -> str:
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": to, "data": data}, "latest"],
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            raise UpstreamTransientError(UPSTREAM, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamTransientError(UPSTREAM, str(exc) or exc.__class__.__name__) from exc

        if response.status_code != 200:
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
            raise UpstreamTransientError(UPSTREAM, "malformed JSON-RPC payload")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamTransientError(UPSTREAM, f"RPC error: {message}", {"selector": data})

        result = body.get("result")
        if not isinstance(result, str) or result in EMPTY_RESULTS:
            raise UpstreamTransientError(UPSTREAM, f"empty result for selector {data}")

        self.logger.debug("eth_call succeeded", to=to, selector=data, result=result)
        return result
