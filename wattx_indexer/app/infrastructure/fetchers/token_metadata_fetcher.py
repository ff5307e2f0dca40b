from __future__ import annotations

from wattx_indexer.app.domain.models import CallResult
from wattx_indexer.app.domain.ports.out import ChainNode, TokenMetadataFetcher
from wattx_indexer.app.infrastructure.decoders.abi_words import (
    decode_abi_string,
    decode_small_int,
    decode_uint256,
    strip_0x,
)

# 4-byte selectors of the read-only token getters
_SELECTOR_NAME = "06fdde03"  # name()
_SELECTOR_SYMBOL = "95d89b41"  # symbol()
_SELECTOR_DECIMALS = "313ce567"  # decimals()
_SELECTOR_TOTAL_SUPPLY = "18160ddd"  # totalSupply()

_MAX_DECIMALS = 255


class NodeTokenMetadataFetcher(TokenMetadataFetcher):
    """
    Token metadata fetcher using the node's callcontract.

    Fetches, each independently:
      - name()        -> str  (ABI dynamic string; bytes32 legacy fallback)
      - symbol()      -> str
      - decimals()    -> int  (0..255)
      - totalSupply() -> decimal string

    Every probe returns a CallResult; a revert, an empty answer or a
    transport error is a failure for that probe only.
    """

    def __init__(self, *, node: ChainNode) -> None:
        self._node = node

    async def fetch_name(self, address: str) -> CallResult[str]:
        return await self._fetch_text(address, _SELECTOR_NAME)

    async def fetch_symbol(self, address: str) -> CallResult[str]:
        return await self._fetch_text(address, _SELECTOR_SYMBOL)

    async def fetch_decimals(self, address: str) -> CallResult[int]:
        raw = await self._node.call_contract(address, _SELECTOR_DECIMALS)
        if not raw.ok:
            return CallResult.failure(raw.error or "decimals() failed")
        if not strip_0x(raw.value):
            return CallResult.failure("decimals() returned no data")

        d = decode_small_int(raw.value, default=-1)
        if not 0 <= d <= _MAX_DECIMALS:
            return CallResult.failure(f"decimals() out of range: {d}")
        return CallResult.success(d)

    async def fetch_total_supply(self, address: str) -> CallResult[str]:
        raw = await self._node.call_contract(address, _SELECTOR_TOTAL_SUPPLY)
        if not raw.ok:
            return CallResult.failure(raw.error or "totalSupply() failed")
        if not strip_0x(raw.value):
            return CallResult.failure("totalSupply() returned no data")
        return CallResult.success(decode_uint256(raw.value))

    async def _fetch_text(self, address: str, selector: str) -> CallResult[str]:
        raw = await self._node.call_contract(address, selector)
        if not raw.ok:
            return CallResult.failure(raw.error or f"{selector} failed")

        text = self._normalize_symbol_name(raw.value)
        if text is None:
            return CallResult.failure(f"{selector} returned no decodable string")
        return CallResult.success(text)

    @staticmethod
    def _normalize_symbol_name(output: str | None) -> str | None:
        hex_str = strip_0x(output)
        if not hex_str:
            return None

        # 1) standard ABI string
        text = decode_abi_string(hex_str).strip()
        if text:
            return text

        # 2) legacy bytes32 (single right-padded word)
        if len(hex_str) == 64:
            try:
                return bytes.fromhex(hex_str).rstrip(b"\x00").decode("utf-8").strip() or None
            except (ValueError, UnicodeDecodeError):
                return None

        return None
