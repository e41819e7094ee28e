"""
Static table of tokens with curated metadata, keyed by lowercase address.

Entries here win over the token-metadata service when resolving logos.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class KnownToken:
    address: str
    symbol: str
    name: str
    decimals: int
    logo_uri: Optional[str] = None


ETH_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
WETH_ADDRESS = "0x4200000000000000000000000000000000000006"

ETH_LOGO = "https://assets.coingecko.com/coins/images/279/standard/ethereum.png"

KNOWN_TOKENS: Dict[str, KnownToken] = {
    ETH_ADDRESS: KnownToken(ETH_ADDRESS, "ETH", "Ethereum", 18, ETH_LOGO),
    WETH_ADDRESS: KnownToken(WETH_ADDRESS, "WETH", "Wrapped Ether", 18, ETH_LOGO),
}


def known_logo(address: str, table: Optional[Dict[str, KnownToken]] = None) -> Optional[str]:
    token = (KNOWN_TOKENS if table is None else table).get(address.lower())
    return token.logo_uri if token else None
