"""
Token list aggregation: paginated subgraph tokens enriched with logos.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shared.errors import UpstreamTransientError
from shared.logging import get_logger

from ..adapters import SubgraphClient, TokenMetadataClient
from ..adapters.subgraph_client import TOKENS_PAGE_QUERY
from ..caching import KeyedTTLCache
from .formatting import iso_timestamp, normalize_address, parse_finite_number
from .known_tokens import KNOWN_TOKENS, KnownToken
from .pagination import paginate
from .resource import ResilientResource, ResourceResult

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


TOKEN_LIST_NAME = "Prism DEX Token List"
TOKEN_LIST_VERSION = {"major": 1, "minor": 0, "patch": 0}
LOGO_ROUTE = "/api/tokens/logo"


def logo_route_for(address: str) -> str:
    return f"{LOGO_ROUTE}?tokenAddress={address}"


def build_token_entry(raw: Dict[str, Any], chain_id: int, has_logo) -> Optional[Dict[str, Any]]:
    """Validate one subgraph token; returns None for entries that must be dropped."""
    address = normalize_address(raw.get("id"))
    if address is None:
        return None

    decimals = parse_finite_number(raw.get("decimals"))
    if decimals is None:
        return None

    entry: Dict[str, Any] = {
        "chainId": chain_id,
        "address": address,
        "symbol": raw.get("symbol"),
        "name": raw.get("name"),
        "decimals": decimals,
    }
    if has_logo(address):
        entry["logoURI"] = logo_route_for(address)
    return entry


class TokenListAggregator:
    """Builds the versioned token list and resolves token logos."""

    def __init__(
        self,
        subgraph: SubgraphClient,
        metadata_client: TokenMetadataClient,
        cache: KeyedTTLCache,
        *,
        chain_id: int,
        ttl: float = 300,
        page_size: int = 1000,
        max_rows: int = 10000,
        known_tokens: Optional[Dict[str, KnownToken]] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.subgraph = subgraph
        self.metadata_client = metadata_client
        self.cache = cache
        self.chain_id = chain_id
        self.ttl = ttl
        self.page_size = page_size
        self.max_rows = max_rows
        self.known_tokens = KNOWN_TOKENS if known_tokens is None else known_tokens
        self.logger = get_logger("gateway.token_list")
        self.resource = ResilientResource(
            "tokenlist",
            self.build_token_list,
            cache,
            ttl,
            args=(chain_id,),
            metrics=metrics,
        )

    async def get_token_list(self) -> ResourceResult:
        return await self.resource.get()

    async def fetch_tokens(self) -> List[Dict[str, Any]]:
        async def fetch_page(first: int, skip: int) -> List[Dict[str, Any]]:
            return await self.subgraph.fetch_page(TOKENS_PAGE_QUERY, "tokens", first, skip)

        return await paginate(fetch_page, page_size=self.page_size, max_rows=self.max_rows)

    async def get_logo_map(self) -> Dict[str, str]:
        """Secondary logo source; any upstream failure yields an empty map."""
        try:
            return await self.cache.get_or_compute(
                "token-logos",
                (self.metadata_client.url,),
                self.metadata_client.fetch_logo_map,
                self.ttl,
            )
        except UpstreamTransientError as exc:
            self.logger.warning("Token metadata unavailable, continuing without logos", error=exc.message)
            return {}

    async def build_token_list(self) -> Dict[str, Any]:
        raw_tokens = await self.fetch_tokens()
        logo_map = await self.get_logo_map()

        def has_logo(address: str) -> bool:
            known = self.known_tokens.get(address)
            return bool((known.logo_uri if known else None) or logo_map.get(address))

        tokens = []
        for raw in raw_tokens:
            entry = build_token_entry(raw, self.chain_id, has_logo)
            if entry is None:
                self.logger.debug("Dropping malformed token", token_id=raw.get("id"))
                continue
            tokens.append(entry)

        self.logger.info("Built token list", tokens=len(tokens), dropped=len(raw_tokens) - len(tokens))
        return {
            "name": TOKEN_LIST_NAME,
            "timestamp": iso_timestamp(),
            "version": dict(TOKEN_LIST_VERSION),
            "tokens": tokens,
        }

    async def resolve_logo(self, address: str) -> Optional[str]:
        """Logo URL for ``address``: known-token table first, then metadata service."""
        known = self.known_tokens.get(address)
        if known is not None and known.logo_uri:
            return known.logo_uri
        logo_map = await self.get_logo_map()
        return logo_map.get(address)
