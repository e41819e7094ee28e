"""
Resilient upstream aggregation for the gateway's read-mostly resources.
"""

from .pagination import paginate
from .pools import PoolListAggregator
from .price import DEFAULT_ETH_PRICE_USD, EthPriceFeed
from .resource import ResilientResource, ResourceOutcome, ResourceResult, StaleFallbackState
from .stats import StatsAggregator
from .tokens import TokenListAggregator

__all__ = [
    "DEFAULT_ETH_PRICE_USD",
    "EthPriceFeed",
    "PoolListAggregator",
    "ResilientResource",
    "ResourceOutcome",
    "ResourceResult",
    "StaleFallbackState",
    "StatsAggregator",
    "TokenListAggregator",
    "paginate",
]
