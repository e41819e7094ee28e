"""
Client for the external token-metadata service used as a secondary logo source.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker
from shared.errors import UpstreamTransientError
from shared.logging import get_logger


UPSTREAM = "token_metadata"


class TokenMetadataClient:
    """Fetches ``{address: logo_url}`` from the token-metadata endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.logger = get_logger("gateway.token_metadata_client")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(UPSTREAM, failure_threshold=3, recovery_timeout=60.0)
        self._owns_client = client is None
        self.timeout = timeout
        self._client = client or httpx.AsyncClient()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_logo_map(self) -> Dict[str, str]:
        return await self.circuit_breaker.call(self._fetch_logo_map)

    async def _fetch_logo_map(self) -> Dict[str, str]:
        try:
            response = await self._client.get(self.url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise UpstreamTransientError(UPSTREAM, str(exc) or exc.__class__.__name__) from exc

        if response.status_code != 200:
            raise UpstreamTransientError(UPSTREAM, f"unexpected status {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamTransientError(UPSTREAM, "malformed JSON payload") from exc

        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("tokens"), list):
            raise UpstreamTransientError(UPSTREAM, "unexpected payload shape")

        logos: Dict[str, str] = {}
        for token in body["tokens"]:
            address, logo = self._extract(token)
            if address and logo:
                logos[address.lower()] = logo
        return logos

    @staticmethod
    def _extract(token: Any):
        # Two payload generations: wrapperAddress/logoUrl and id/image_url
        if not isinstance(token, dict):
            return None, None
        if "wrapperAddress" in token:
            return token.get("wrapperAddress"), token.get("logoUrl")
        return token.get("id"), token.get("image_url")
