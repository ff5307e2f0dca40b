from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, Sequence

from wattx_indexer.app.domain.models import (
    CallResult,
    IndexedBlock,
    TokenBalanceRecord,
    TokenRecord,
    TokenTransferRecord,
    VerifiedContractRecord,
)
from wattx_indexer.app.domain.rpc_types import RpcBlock, RpcReceipt


class ChainNode(Protocol):
    """
    Port for the node's JSON-RPC surface used by the indexer.

    get_block returns None when the node reports the block as not found;
    every other failure raises (NodeUnavailableError / NodeRpcError /
    DecodeError) so the sync loop can back off.
    """

    async def get_chain_height(self) -> int: ...

    async def get_block(self, height: int) -> RpcBlock | None: ...

    async def get_transaction_receipts(self, txid: str) -> list[RpcReceipt]: ...

    async def get_contract_code(self, address: str) -> CallResult[str]: ...

    async def call_contract(self, address: str, data: str) -> CallResult[str]: ...

    async def to_hex_address(self, address: str) -> CallResult[str]: ...

    async def from_hex_address(self, hex_address: str) -> CallResult[str]: ...


class TokenMetadataFetcher(Protocol):
    """
    Low-level dependency used by token discovery.

    Each probe is independent and never raises: a failing call comes back as
    a failed CallResult and the caller decides on the placeholder.
    """

    async def fetch_name(self, address: str) -> CallResult[str]: ...

    async def fetch_symbol(self, address: str) -> CallResult[str]: ...

    async def fetch_decimals(self, address: str) -> CallResult[int]: ...

    async def fetch_total_supply(self, address: str) -> CallResult[str]: ...


class EvmEventDecoder(Protocol):
    def decode(
        self,
        *,
        topics: Sequence[str],
        data: str,
    ) -> dict[str, Any] | None:
        """
        Decode an EVM log (topics + data) into a dict of typed fields.

        Return:
          - dict[str, Any] for decoded event fields
          - None if the log is not decodable / not the expected event
        """
        ...


class IndexStore(Protocol):
    """
    Port for the single writer of the secondary index.

    write_block persists one IndexedBlock in one transaction; all writes are
    upserts keyed by natural identity so re-indexing a height is a no-op in
    effect.
    """

    async def last_indexed_height(self) -> int | None: ...

    async def set_last_indexed_height(self, height: int) -> None: ...

    async def write_block(self, indexed: IndexedBlock) -> None: ...

    async def get_token(self, address: str) -> TokenRecord | None: ...

    async def get_verified_contract(self, address: str) -> VerifiedContractRecord | None: ...

    async def upsert_verified_contract(self, contract: VerifiedContractRecord) -> None: ...

    async def lowest_indexed_height(self) -> int | None: ...

    async def list_token_addresses(self) -> list[str]: ...

    def iter_token_transfers(self, token_address: str) -> AsyncIterator[TokenTransferRecord]: ...

    async def replace_token_balances(
        self,
        token_address: str,
        balances: Sequence[TokenBalanceRecord],
    ) -> None: ...


class BlockIndexer(Protocol):
    """
    Port for turning one block height into an IndexedBlock.

    Implementations fetch the block and its receipts from the node, decode
    rows, resolve tokens referenced by Transfer logs and return everything
    the store must write atomically. None means the node does not have the
    block (a gap, skipped by the caller).
    """

    async def fetch_and_decode(self, height: int) -> IndexedBlock | None: ...

    def reset_caches(self) -> None: ...
