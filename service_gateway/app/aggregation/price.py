"""
ETH/USD price feed read from an on-chain oracle.
"""

from __future__ import annotations

import asyncio
from typing import Optional, TYPE_CHECKING

from shared.errors import UpstreamTransientError
from shared.logging import get_logger

from ..adapters import RpcClient
from ..caching import KeyedTTLCache
from .formatting import format_js_number
from .resource import ResilientResource, ResourceOutcome, ResourceResult

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_ETH_PRICE_USD = "3000"

# keccak256("latestAnswer()")[:4] and keccak256("decimals()")[:4]
LATEST_ANSWER_SELECTOR = "0x50d25bcd"
DECIMALS_SELECTOR = "0x313ce567"

# 10**77 is the largest power of ten below 2**256
MAX_ORACLE_DECIMALS = 77


def parse_price(answer_hex: str, decimals_hex: str) -> str:
    """Scale the raw oracle answer by its decimals and render it as a string."""
    try:
        answer = int(answer_hex, 16)
        decimals = int(decimals_hex, 16)
    except ValueError as exc:
        raise UpstreamTransientError("rpc", "non-hex oracle result") from exc
    if decimals > MAX_ORACLE_DECIMALS:
        raise UpstreamTransientError("rpc", f"implausible oracle decimals: {decimals}")
    return format_js_number(answer / 10 ** decimals)


class EthPriceFeed:
    """Serves ``{"ethPriceUSD": str}``; never fails, bottoming out at a default."""

    def __init__(
        self,
        rpc_client: RpcClient,
        cache: KeyedTTLCache,
        *,
        oracle_address: str,
        ttl: float = 30,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.rpc_client = rpc_client
        self.oracle_address = oracle_address
        self.logger = get_logger("gateway.price_feed")
        self.resource = ResilientResource(
            "eth-price",
            self.fetch_price,
            cache,
            ttl,
            args=(oracle_address,),
            default=DEFAULT_ETH_PRICE_USD,
            metrics=metrics,
        )

    async def get_price(self) -> ResourceResult:
        if not self.rpc_client.configured:
            self.logger.warning("RPC endpoint not configured, serving default price")
            return ResourceResult(value=DEFAULT_ETH_PRICE_USD, outcome=ResourceOutcome.DEFAULT)
        return await self.resource.get()

    async def fetch_price(self) -> str:
        results = await asyncio.gather(
            self.rpc_client.eth_call(self.oracle_address, LATEST_ANSWER_SELECTOR),
            self.rpc_client.eth_call(self.oracle_address, DECIMALS_SELECTOR),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        answer_hex, decimals_hex = results
        price = parse_price(answer_hex, decimals_hex)
        self.logger.info("Fetched ETH price", answer=answer_hex, decimals=decimals_hex, price=price)
        return price
