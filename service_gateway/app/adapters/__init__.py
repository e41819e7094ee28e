"""
Adapters package for the Gateway Service.

Contains HTTP client wrappers for the upstreams the gateway aggregates
(subgraph indexer, JSON-RPC node, token-metadata service). These adapters
encapsulate:

- Endpoints, request shapes and fixed timeouts
- Circuit breakers and retry policies
- Mapping of every transport or payload failure onto UpstreamTransientError

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .rpc_client import RpcClient
from .subgraph_client import SubgraphClient
from .token_metadata_client import TokenMetadataClient

__all__ = [
    "RpcClient",
    "SubgraphClient",
    "TokenMetadataClient",
]
