from __future__ import annotations

import asyncio
import logging
from typing import Final

from wattx_indexer.app.domain.models import TokenRecord
from wattx_indexer.app.domain.ports.out import ChainNode, IndexStore, TokenMetadataFetcher

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME: Final[str] = "Unknown"
PLACEHOLDER_SYMBOL: Final[str] = "???"
PLACEHOLDER_DECIMALS: Final[int] = 18
PLACEHOLDER_TOTAL_SUPPLY: Final[str] = "0"


class TokenDiscovery:
    """
    Lazy "probe on first sight" token registry.

    detect_token returns the stored row when there is one; otherwise it runs
    the four metadata probes once, folds failed probes into placeholders and
    remembers the result for the lifetime of this object. It never writes:
    the caller persists the returned row together with the transfers that
    reference it. Failed probes are not retried.
    """

    def __init__(
        self,
        *,
        store: IndexStore,
        fetcher: TokenMetadataFetcher,
        node: ChainNode | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._node = node
        self._known: dict[str, TokenRecord] = {}
        self._rejected: set[str] = set()

    async def detect_token(self, address: str) -> TokenRecord:
        key = _token_key(address)

        cached = self._known.get(key)
        if cached is not None:
            return cached

        existing = await self._store.get_token(key)
        if existing is not None:
            self._known[key] = existing
            return existing

        token, succeeded = await self._probe(key)
        self._known[key] = token
        logger.info(
            "Detected token: %s (%s) at %s [%s/4 probes ok]",
            token.name,
            token.symbol,
            key,
            succeeded,
        )
        return token

    async def probe_created_contract(self, address: str) -> TokenRecord | None:
        """
        Token candidate check for a freshly created contract.

        Unlike detect_token, a contract is only accepted when it has code and
        answers at least one metadata probe.
        """
        key = _token_key(address)
        if key in self._known:
            return self._known[key]
        if key in self._rejected:
            return None

        existing = await self._store.get_token(key)
        if existing is not None:
            self._known[key] = existing
            return existing

        if self._node is not None:
            code = await self._node.get_contract_code(key)
            if code.ok and not (code.value or "").removeprefix("0x"):
                self._rejected.add(key)
                return None

        token, succeeded = await self._probe(key)
        if succeeded == 0:
            self._rejected.add(key)
            return None

        self._known[key] = token
        logger.info("Created contract %s looks like a token: %s (%s)", key, token.name, token.symbol)
        return token

    async def _probe(self, address: str) -> tuple[TokenRecord, int]:
        name, symbol, decimals, total_supply = await asyncio.gather(
            self._fetcher.fetch_name(address),
            self._fetcher.fetch_symbol(address),
            self._fetcher.fetch_decimals(address),
            self._fetcher.fetch_total_supply(address),
        )

        for label, result in (
            ("name", name),
            ("symbol", symbol),
            ("decimals", decimals),
            ("totalSupply", total_supply),
        ):
            if not result.ok:
                logger.debug("Token probe %s failed for %s: %s", label, address, result.error)

        token = TokenRecord(
            address=address,
            name=name.unwrap_or(PLACEHOLDER_NAME),
            symbol=symbol.unwrap_or(PLACEHOLDER_SYMBOL),
            decimals=decimals.unwrap_or(PLACEHOLDER_DECIMALS),
            total_supply=total_supply.unwrap_or(PLACEHOLDER_TOTAL_SUPPLY),
        )
        succeeded = sum(1 for r in (name, symbol, decimals, total_supply) if r.ok)
        return token, succeeded


def _token_key(address: str) -> str:
    return address.lower().removeprefix("0x")
