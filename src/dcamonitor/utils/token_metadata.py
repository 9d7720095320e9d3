"""
Token metadata resolution: mint address to symbol and decimals.

Lookup order is the static fallback table, then the in-memory cache, then the
Jupiter token API. When the API cannot answer, a synthetic
"Unknown (abcd...wxyz)" label with 9 decimals is returned so that message
formatting never fails.
"""

import logging
from typing import Dict, Iterable, Optional

import httpx

from dcamonitor.models import TokenInfo, TrackedToken
from dcamonitor.monitor.config import KNOWN_TOKENS, METADATA_TIMEOUT_SECONDS
from dcamonitor.monitor.utils import short_address

logger = logging.getLogger(__name__)


class TokenMetadataResolver:
    """Resolves mint addresses to `TokenInfo`, caching successful lookups."""

    API_URL = "https://lite-api.jup.ag/tokens/v1/token/{mint}"
    DEFAULT_DECIMALS = 9

    def __init__(
        self,
        tracked_tokens: Iterable[TrackedToken] = (),
        known_tokens: Optional[Dict[str, TokenInfo]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = METADATA_TIMEOUT_SECONDS,
    ):
        """
        Args:
            tracked_tokens: Tracked tokens, always resolved from configuration
            known_tokens: Static fallback table (defaults to SOL/USDC/USDT)
            client: Shared httpx client; one is created when omitted
            timeout: Per-request timeout in seconds
        """
        self.fallback: Dict[str, TokenInfo] = dict(
            KNOWN_TOKENS if known_tokens is None else known_tokens
        )
        for token in tracked_tokens:
            self.fallback[token.mint] = TokenInfo(
                symbol=token.symbol, decimals=token.decimals
            )

        self._cache: Dict[str, TokenInfo] = {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def unknown(mint: str) -> TokenInfo:
        return TokenInfo(
            symbol=f"Unknown ({short_address(mint)})",
            decimals=TokenMetadataResolver.DEFAULT_DECIMALS,
        )

    async def resolve(self, mint: str) -> TokenInfo:
        if mint in self.fallback:
            return self.fallback[mint]
        if mint in self._cache:
            return self._cache[mint]

        info = await self._fetch(mint)
        if info is None:
            return self.unknown(mint)

        self._cache[mint] = info
        return info

    async def _fetch(self, mint: str) -> Optional[TokenInfo]:
        try:
            response = await self._client.get(self.API_URL.format(mint=mint))
            response.raise_for_status()
            data = response.json()
            return TokenInfo(symbol=data["symbol"], decimals=int(data["decimals"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Metadata lookup failed for {mint}: {e}")
            return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
