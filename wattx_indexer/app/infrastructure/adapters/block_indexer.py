from __future__ import annotations

import dataclasses
import logging

from wattx_indexer.app.application.services.token_discovery import TokenDiscovery
from wattx_indexer.app.domain.errors import DecodeError, NodeRpcError
from wattx_indexer.app.domain.models import (
    EventLogRecord,
    IndexedBlock,
    TokenRecord,
    TokenTransferRecord,
)
from wattx_indexer.app.domain.ports.out import BlockIndexer, ChainNode, IndexStore
from wattx_indexer.app.domain.rpc_types import RpcBlock, RpcReceipt, RpcTransaction
from wattx_indexer.app.infrastructure.decoders.block_decoder import (
    apply_receipts,
    decode_block_header,
    decode_event_logs,
    decode_token_transfer,
    decode_transaction,
)
from wattx_indexer.app.infrastructure.decoders.transfer_decoder import TransferDecoder
from wattx_indexer.app.infrastructure.decoders.verified_abi_decoder import AbiEventDecoder

logger = logging.getLogger(__name__)


class NodeBlockIndexer(BlockIndexer):
    """
    Indexer adapter: node block -> IndexedBlock.

    Strategy:
    - fetch the block at verbosity 2 (full transactions);
    - decode header and transactions (pure);
    - per transaction, fetch receipts best-effort (RPC error / malformed
      receipt = no logs; transport errors propagate so the batch is retried);
    - store every log; decode Transfer logs into token transfers and make
      sure the emitting token is part of the bundle;
    - annotate logs of verified contracts with their decoded event;
    - optionally probe freshly created contracts as token candidates.

    Transactions are processed in block order; token discovery is memoized
    by TokenDiscovery so a token is probed once no matter how many transfers
    reference it.
    """

    def __init__(
        self,
        *,
        node: ChainNode,
        store: IndexStore,
        token_discovery: TokenDiscovery,
        probe_created_contracts: bool = True,
    ) -> None:
        self._node = node
        self._store = store
        self._tokens = token_discovery
        self._probe_created_contracts = probe_created_contracts
        self._transfer_decoder = TransferDecoder()
        self._abi_decoders: dict[str, AbiEventDecoder | None] = {}

    def reset_caches(self) -> None:
        # verified contracts are added out-of-band; re-read them per batch
        self._abi_decoders.clear()

    async def fetch_and_decode(self, height: int) -> IndexedBlock | None:
        block = await self._node.get_block(height)
        if block is None:
            return None
        if block.height != height:
            raise DecodeError(f"Node returned block {block.height} for height {height}")
        return await self.decode_block(block)

    async def decode_block(self, block: RpcBlock) -> IndexedBlock:
        indexed = IndexedBlock(block=decode_block_header(block))
        tokens: dict[str, TokenRecord] = {}

        for tx_index, tx in enumerate(block.tx):
            if not isinstance(tx, RpcTransaction):
                continue
            await self._index_transaction(tx, tx_index, block, indexed, tokens)

        indexed.tokens = list(tokens.values())
        return indexed

    async def _index_transaction(
        self,
        tx: RpcTransaction,
        tx_index: int,
        block: RpcBlock,
        indexed: IndexedBlock,
        tokens: dict[str, TokenRecord],
    ) -> None:
        receipts = await self._receipts(tx.txid)
        record = apply_receipts(decode_transaction(tx, block, tx_index), receipts)
        indexed.transactions.append(record)

        for log in decode_event_logs(tx.txid, receipts, block):
            transfer = decode_token_transfer(log, self._transfer_decoder)
            indexed.event_logs.append(await self._annotate(log, transfer))

            if transfer is not None:
                token = await self._tokens.detect_token(transfer.token_address)
                tokens.setdefault(token.address, token)
                indexed.token_transfers.append(
                    dataclasses.replace(transfer, token_address=token.address)
                )

        if self._probe_created_contracts and record.contract_address:
            candidate = await self._tokens.probe_created_contract(record.contract_address)
            if candidate is not None:
                tokens.setdefault(candidate.address, candidate)

    async def _receipts(self, txid: str) -> list[RpcReceipt]:
        try:
            return await self._node.get_transaction_receipts(txid)
        except NodeRpcError as exc:
            logger.debug("No receipt for %s: %s", txid, exc)
            return []
        except DecodeError as exc:
            logger.warning("Malformed receipt for %s, indexing without logs: %s", txid, exc)
            return []

    async def _annotate(
        self,
        log: EventLogRecord,
        transfer: TokenTransferRecord | None,
    ) -> EventLogRecord:
        decoder = await self._abi_decoder_for(log.address)
        decoded = decoder.decode(topics=log.topics, data=log.data) if decoder else None
        if decoded is not None:
            return dataclasses.replace(log, decoded_name=decoded["name"], decoded_args=decoded["args"])

        if transfer is not None:
            return dataclasses.replace(
                log,
                decoded_name="Transfer",
                decoded_args={
                    "from": transfer.from_address,
                    "to": transfer.to_address,
                    "value": transfer.value,
                },
            )
        return log

    async def _abi_decoder_for(self, address: str | None) -> AbiEventDecoder | None:
        if not address:
            return None
        if address in self._abi_decoders:
            return self._abi_decoders[address]

        decoder: AbiEventDecoder | None = None
        contract = await self._store.get_verified_contract(address)
        if contract is not None and contract.abi:
            try:
                decoder = AbiEventDecoder.from_json(contract.abi)
            except ValueError as exc:
                logger.warning("Verified contract %s has an unusable ABI: %s", address, exc)

        self._abi_decoders[address] = decoder
        return decoder
