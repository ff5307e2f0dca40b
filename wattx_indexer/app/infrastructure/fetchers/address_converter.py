from __future__ import annotations

import logging

from wattx_indexer.app.domain.ports.out import ChainNode
from wattx_indexer.app.infrastructure.decoders.abi_words import strip_0x

logger = logging.getLogger(__name__)


class AddressConverter:
    """
    hex <-> base58 display-address conversion through the node.

    Results are memoized on the instance (construct one per process and pass
    it around). A failed conversion falls back to the input value and is not
    cached, so a later call can still succeed.
    """

    def __init__(self, *, node: ChainNode) -> None:
        self._node = node
        self._to_base58: dict[str, str] = {}
        self._to_hex: dict[str, str] = {}

    async def to_base58(self, hex_address: str) -> str:
        key = strip_0x(hex_address).lower()
        cached = self._to_base58.get(key)
        if cached is not None:
            return cached

        result = await self._node.from_hex_address(key)
        if not result.ok or not result.value:
            logger.debug("fromhexaddress failed for %s: %s", key, result.error)
            return hex_address

        self._to_base58[key] = result.value
        self._to_hex[result.value] = key
        return result.value

    async def to_hex(self, base58_address: str) -> str:
        cached = self._to_hex.get(base58_address)
        if cached is not None:
            return cached

        result = await self._node.to_hex_address(base58_address)
        if not result.ok or not result.value:
            logger.debug("gethexaddress failed for %s: %s", base58_address, result.error)
            return base58_address

        hex_address = strip_0x(result.value).lower()
        self._to_hex[base58_address] = hex_address
        self._to_base58[hex_address] = base58_address
        return hex_address
