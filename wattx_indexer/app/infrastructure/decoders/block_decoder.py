"""
Pure transformation of node block / receipt payloads into index rows.

Nothing here performs I/O. The chain is UTXO-based with an EVM overlay, so
transaction "to/value" are projected from the first output and the sender is
not re-derived from input scripts.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Sequence

from wattx_indexer.app.domain.amounts import coins_to_satoshis
from wattx_indexer.app.domain.models import (
    BlockRecord,
    EventLogRecord,
    TokenTransferRecord,
    TransactionRecord,
)
from wattx_indexer.app.domain.rpc_types import RpcBlock, RpcReceipt, RpcTransaction
from wattx_indexer.app.infrastructure.decoders.abi_words import (
    contract_key,
    normalize_address,
)
from wattx_indexer.app.infrastructure.decoders.transfer_decoder import TransferDecoder

logger = logging.getLogger(__name__)

_EMPTY_INPUT = "0x"


def decode_block_header(block: RpcBlock) -> BlockRecord:
    reward_tx = _reward_transaction(block)
    miner = block.miner or (_first_paid_address(reward_tx) if reward_tx else None)

    return BlockRecord(
        height=block.height,
        hash=block.hash,
        parent_hash=block.previous_hash,
        timestamp=block.time,
        miner=miner,
        difficulty=str(block.difficulty) if block.difficulty is not None else "0",
        tx_count=len(block.tx),
        size=block.size,
        nonce=str(block.nonce) if block.nonce is not None else "0",
        is_pos=1 if block.is_pos else 0,
        block_reward=str(block_reward(block)),
    )


def block_reward(block: RpcBlock) -> int:
    """
    PoW: everything the coinbase pays out.
    PoS: coinstake outputs minus the staked inputs; 0 when the node did not
    include prevout values for the coinstake inputs.
    """
    reward_tx = _reward_transaction(block)
    if reward_tx is None:
        return 0

    paid = sum(coins_to_satoshis(v.value) for v in reward_tx.vout)
    if not block.is_pos:
        return paid

    if not reward_tx.vin or any(vin.prevout is None for vin in reward_tx.vin):
        return 0
    staked = sum(coins_to_satoshis(vin.prevout.value) for vin in reward_tx.vin)  # type: ignore[union-attr]
    return max(paid - staked, 0)


def _reward_transaction(block: RpcBlock) -> RpcTransaction | None:
    txs = block.transactions
    if block.is_pos:
        # tx[0] is an empty coinbase, tx[1] is the coinstake
        return txs[1] if len(txs) > 1 else None
    if txs and txs[0].is_coinbase:
        return txs[0]
    return None


def _first_paid_address(tx: RpcTransaction) -> str | None:
    for vout in tx.vout:
        address = vout.script_pub_key.primary_address
        if address:
            return address
    return None


def decode_transaction(tx: RpcTransaction, block: RpcBlock, tx_index: int) -> TransactionRecord:
    to_address: str | None = None
    value = 0

    if tx.vout:
        first = tx.vout[0].script_pub_key
        if not first.is_create:
            to_address = normalize_address(first.primary_address)
        value = coins_to_satoshis(tx.vout[0].value)

    contract_address: str | None = None
    input_data = _EMPTY_INPUT
    for vout in tx.vout:
        spk = vout.script_pub_key
        if spk.is_create:
            contract_address = contract_key(spk.address) or contract_address
        elif spk.is_call:
            input_data = spk.hex or _EMPTY_INPUT

    return TransactionRecord(
        hash=tx.txid,
        block_height=block.height,
        block_hash=block.hash,
        tx_index=tx_index,
        from_address=None,
        to_address=to_address,
        value=str(value),
        input=input_data,
        contract_address=contract_address,
        timestamp=block.time,
    )


def apply_receipts(tx: TransactionRecord, receipts: Sequence[RpcReceipt]) -> TransactionRecord:
    """Fold execution receipts into the transaction row (gas used, status, created contract)."""
    if not receipts:
        return tx

    gas_used = sum(r.gas_used or 0 for r in receipts)
    status = 1 if all(r.succeeded for r in receipts) else 0

    contract_address = tx.contract_address
    if contract_address is None:
        created = [r.contract_address for r in receipts if r.contract_address]
        # a call receipt also carries contractAddress (the callee); only a
        # create output makes it a creation
        if created and tx.input == _EMPTY_INPUT and tx.to_address is None:
            contract_address = contract_key(created[0])

    return dataclasses.replace(
        tx,
        gas_used=str(gas_used),
        status=status,
        contract_address=contract_address,
    )


def decode_event_logs(
    tx_hash: str,
    receipts: Sequence[RpcReceipt],
    block: RpcBlock,
) -> list[EventLogRecord]:
    """
    One row per log, verbatim. log_index counts across all receipts of the
    transaction so (tx_hash, log_index) stays unique.
    """
    out: list[EventLogRecord] = []
    log_index = 0
    for receipt in receipts:
        for log in receipt.logs:
            out.append(
                EventLogRecord(
                    tx_hash=tx_hash,
                    log_index=log_index,
                    address=contract_key(log.address),
                    topics=tuple(t.lower() for t in log.topics[:4]),
                    data=(log.data or "").lower(),
                    block_height=block.height,
                    timestamp=block.time,
                )
            )
            log_index += 1
    return out


def decode_token_transfer(
    log: EventLogRecord,
    decoder: TransferDecoder,
) -> TokenTransferRecord | None:
    if not log.address:
        return None

    decoded = decoder.decode(topics=log.topics, data=log.data)
    if decoded is None:
        return None

    return TokenTransferRecord(
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        token_address=log.address,
        from_address=decoded["from"],
        to_address=decoded["to"],
        value=decoded["value"],
        block_height=log.block_height,
        timestamp=log.timestamp,
    )
