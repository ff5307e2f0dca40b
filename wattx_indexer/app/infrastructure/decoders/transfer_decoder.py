from __future__ import annotations

from typing import Any, Sequence

from eth_utils import keccak

from wattx_indexer.app.domain.ports.out import EvmEventDecoder
from wattx_indexer.app.infrastructure.decoders.abi_words import (
    decode_uint256,
    strip_0x,
    topic_to_address,
)

TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
TRANSFER_TOPIC = keccak(text=TRANSFER_EVENT_SIGNATURE).hex()


class TransferDecoder(EvmEventDecoder):
    """
    ABI-less decoder for the fungible-token Transfer event.

    Works on any emitter: topic0 must be keccak("Transfer(address,address,uint256)")
    and at least three topics must be present (from/to indexed). The amount
    is the uint256 in the data payload.
    """

    @property
    def topic0(self) -> str:
        return TRANSFER_TOPIC

    @property
    def event_signature(self) -> str:
        return TRANSFER_EVENT_SIGNATURE

    def matches(self, topics: Sequence[str]) -> bool:
        return len(topics) >= 3 and strip_0x(topics[0]).lower() == TRANSFER_TOPIC

    def decode(
        self,
        *,
        topics: Sequence[str],
        data: str,
    ) -> dict[str, Any] | None:
        if not self.matches(topics):
            return None

        from_address = topic_to_address(topics[1])
        to_address = topic_to_address(topics[2])
        if not from_address or not to_address:
            return None

        return {
            "from": from_address,
            "to": to_address,
            "value": decode_uint256(data),
        }
