from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Final, Sequence

from sqlalchemy import Boolean, DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from wattx_indexer.app.domain.errors import StoreError
from wattx_indexer.app.domain.models import (
    CURSOR_KEY,
    EventLogRecord,
    IndexedBlock,
    TokenBalanceRecord,
    TokenRecord,
    TokenTransferRecord,
    TransactionRecord,
    VerifiedContractRecord,
)
from wattx_indexer.app.infrastructure.decoders.abi_words import contract_key

logger = logging.getLogger(__name__)

_DEFAULT_FETCH_BATCH_SIZE: Final[int] = 5_000


_UPSERT_BLOCK_SQL = text(
    """
    INSERT INTO blocks (
        height,
        hash,
        parent_hash,
        timestamp,
        miner,
        difficulty,
        gas_limit,
        gas_used,
        tx_count,
        size,
        nonce,
        is_pos,
        block_reward
    )
    VALUES (
        :height,
        :hash,
        :parent_hash,
        :timestamp,
        :miner,
        :difficulty,
        :gas_limit,
        :gas_used,
        :tx_count,
        :size,
        :nonce,
        :is_pos,
        :block_reward
    )
    ON CONFLICT (height) DO UPDATE SET
        hash = EXCLUDED.hash,
        parent_hash = EXCLUDED.parent_hash,
        timestamp = EXCLUDED.timestamp,
        miner = EXCLUDED.miner,
        difficulty = EXCLUDED.difficulty,
        gas_limit = EXCLUDED.gas_limit,
        gas_used = EXCLUDED.gas_used,
        tx_count = EXCLUDED.tx_count,
        size = EXCLUDED.size,
        nonce = EXCLUDED.nonce,
        is_pos = EXCLUDED.is_pos,
        block_reward = EXCLUDED.block_reward
    """
)

_UPSERT_TRANSACTION_SQL = text(
    """
    INSERT INTO transactions (
        hash,
        block_height,
        block_hash,
        tx_index,
        from_address,
        to_address,
        value,
        gas,
        gas_price,
        gas_used,
        nonce,
        input,
        status,
        contract_address,
        timestamp
    )
    VALUES (
        :hash,
        :block_height,
        :block_hash,
        :tx_index,
        :from_address,
        :to_address,
        :value,
        :gas,
        :gas_price,
        :gas_used,
        :nonce,
        :input,
        :status,
        :contract_address,
        :timestamp
    )
    ON CONFLICT (hash) DO UPDATE SET
        block_height = EXCLUDED.block_height,
        block_hash = EXCLUDED.block_hash,
        tx_index = EXCLUDED.tx_index,
        from_address = EXCLUDED.from_address,
        to_address = EXCLUDED.to_address,
        value = EXCLUDED.value,
        gas = EXCLUDED.gas,
        gas_price = EXCLUDED.gas_price,
        gas_used = EXCLUDED.gas_used,
        nonce = EXCLUDED.nonce,
        input = EXCLUDED.input,
        status = EXCLUDED.status,
        contract_address = EXCLUDED.contract_address,
        timestamp = EXCLUDED.timestamp
    """
)

# metadata is fetched once and never refreshed
_INSERT_TOKEN_SQL = text(
    """
    INSERT INTO tokens (
        address,
        name,
        symbol,
        decimals,
        total_supply
    )
    VALUES (
        :address,
        :name,
        :symbol,
        :decimals,
        :total_supply
    )
    ON CONFLICT (address) DO NOTHING
    """
)

_UPSERT_EVENT_LOG_SQL = text(
    """
    INSERT INTO event_logs (
        tx_hash,
        log_index,
        address,
        topic0,
        topic1,
        topic2,
        topic3,
        data,
        block_height,
        timestamp,
        decoded_name,
        decoded_args
    )
    VALUES (
        :tx_hash,
        :log_index,
        :address,
        :topic0,
        :topic1,
        :topic2,
        :topic3,
        :data,
        :block_height,
        :timestamp,
        :decoded_name,
        :decoded_args
    )
    ON CONFLICT (tx_hash, log_index) DO UPDATE SET
        address = EXCLUDED.address,
        topic0 = EXCLUDED.topic0,
        topic1 = EXCLUDED.topic1,
        topic2 = EXCLUDED.topic2,
        topic3 = EXCLUDED.topic3,
        data = EXCLUDED.data,
        block_height = EXCLUDED.block_height,
        timestamp = EXCLUDED.timestamp,
        decoded_name = EXCLUDED.decoded_name,
        decoded_args = EXCLUDED.decoded_args
    """
)

_UPSERT_TOKEN_TRANSFER_SQL = text(
    """
    INSERT INTO token_transfers (
        tx_hash,
        log_index,
        token_address,
        from_address,
        to_address,
        value,
        block_height,
        timestamp
    )
    VALUES (
        :tx_hash,
        :log_index,
        :token_address,
        :from_address,
        :to_address,
        :value,
        :block_height,
        :timestamp
    )
    ON CONFLICT (tx_hash, log_index) DO UPDATE SET
        token_address = EXCLUDED.token_address,
        from_address = EXCLUDED.from_address,
        to_address = EXCLUDED.to_address,
        value = EXCLUDED.value,
        block_height = EXCLUDED.block_height,
        timestamp = EXCLUDED.timestamp
    """
)

_SET_STATE_SQL = text(
    """
    INSERT INTO indexer_state (key, value)
    VALUES (:key, :value)
    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
    """
)

_UPSERT_VERIFIED_CONTRACT_SQL = text(
    """
    INSERT INTO contracts (
        address,
        name,
        source_code,
        abi,
        compiler_version,
        optimization,
        constructor_args,
        verified_at
    )
    VALUES (
        :address,
        :name,
        :source_code,
        :abi,
        :compiler_version,
        :optimization,
        :constructor_args,
        :verified_at
    )
    ON CONFLICT (address) DO UPDATE SET
        name = EXCLUDED.name,
        source_code = EXCLUDED.source_code,
        abi = EXCLUDED.abi,
        compiler_version = EXCLUDED.compiler_version,
        optimization = EXCLUDED.optimization,
        constructor_args = EXCLUDED.constructor_args,
        verified_at = EXCLUDED.verified_at
    """
).bindparams(
    bindparam("optimization", type_=Boolean()),
    bindparam("verified_at", type_=DateTime(timezone=True)),
)


class SqlAlchemyIndexStore:
    """
    SQLAlchemy implementation of IndexStore (the single writer).

    - every write is an INSERT ... ON CONFLICT upsert on the natural key,
      so replaying a height converges to the same rows;
    - write_block commits block, transactions, tokens, event logs and token
      transfers of one height in one transaction;
    - SQLAlchemy failures are re-raised as StoreError.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        fetch_batch_size: int = _DEFAULT_FETCH_BATCH_SIZE,
    ) -> None:
        if fetch_batch_size <= 0:
            raise ValueError("fetch_batch_size must be positive")
        self._engine = engine
        self._fetch_batch_size = fetch_batch_size

    # ---------------------------------------------------------------------
    # Cursor
    # ---------------------------------------------------------------------

    async def last_indexed_height(self) -> int | None:
        sql = text("SELECT value FROM indexer_state WHERE key = :key")
        try:
            async with self._engine.connect() as conn:
                value = (await conn.execute(sql, {"key": CURSOR_KEY})).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read sync cursor: {exc}") from exc
        return int(value) if value is not None else None

    async def set_last_indexed_height(self, height: int) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(_SET_STATE_SQL, {"key": CURSOR_KEY, "value": str(height)})
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not advance sync cursor to {height}: {exc}") from exc

    async def lowest_indexed_height(self) -> int | None:
        try:
            async with self._engine.connect() as conn:
                return (await conn.execute(text("SELECT MIN(height) FROM blocks"))).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read lowest indexed height: {exc}") from exc

    # ---------------------------------------------------------------------
    # Block writes
    # ---------------------------------------------------------------------

    async def write_block(self, indexed: IndexedBlock) -> None:
        block = indexed.block
        try:
            async with self._engine.begin() as conn:
                await conn.execute(_UPSERT_BLOCK_SQL, _block_params(indexed))
                await self._write_transactions(conn, indexed.transactions)
                # tokens before the transfers that reference them
                await self._write_tokens(conn, indexed.tokens)
                await self._write_event_logs(conn, indexed.event_logs)
                await self._write_token_transfers(conn, indexed.token_transfers)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not persist block {block.height}: {exc}") from exc

        logger.debug(
            "Block persisted: height=%s, txs=%s, logs=%s, transfers=%s, new_tokens=%s",
            block.height,
            len(indexed.transactions),
            len(indexed.event_logs),
            len(indexed.token_transfers),
            len(indexed.tokens),
        )

    async def _write_transactions(
        self,
        conn: AsyncConnection,
        transactions: Sequence[TransactionRecord],
    ) -> None:
        if transactions:
            await conn.execute(_UPSERT_TRANSACTION_SQL, [_transaction_params(t) for t in transactions])

    async def _write_tokens(self, conn: AsyncConnection, tokens: Sequence[TokenRecord]) -> None:
        if tokens:
            await conn.execute(_INSERT_TOKEN_SQL, [_token_params(t) for t in tokens])

    async def _write_event_logs(
        self,
        conn: AsyncConnection,
        event_logs: Sequence[EventLogRecord],
    ) -> None:
        if event_logs:
            await conn.execute(_UPSERT_EVENT_LOG_SQL, [_event_log_params(e) for e in event_logs])

    async def _write_token_transfers(
        self,
        conn: AsyncConnection,
        transfers: Sequence[TokenTransferRecord],
    ) -> None:
        if transfers:
            await conn.execute(_UPSERT_TOKEN_TRANSFER_SQL, [_transfer_params(t) for t in transfers])

    # ---------------------------------------------------------------------
    # Tokens
    # ---------------------------------------------------------------------

    async def get_token(self, address: str) -> TokenRecord | None:
        sql = text(
            """
            SELECT address, name, symbol, decimals, total_supply
            FROM tokens
            WHERE address = :address
            """
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(sql, {"address": contract_key(address)})).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read token {address}: {exc}") from exc

        if row is None:
            return None
        return TokenRecord(
            address=row["address"],
            name=row["name"],
            symbol=row["symbol"],
            decimals=row["decimals"],
            total_supply=row["total_supply"],
        )

    async def list_token_addresses(self) -> list[str]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT address FROM tokens ORDER BY address"))
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not list tokens: {exc}") from exc

    async def iter_token_transfers(self, token_address: str) -> AsyncIterator[TokenTransferRecord]:
        sql = text(
            """
            SELECT
                tt.tx_hash,
                tt.log_index,
                tt.token_address,
                tt.from_address,
                tt.to_address,
                tt.value,
                tt.block_height,
                tt.timestamp
            FROM token_transfers tt
            JOIN transactions t
              ON t.hash = tt.tx_hash
            WHERE tt.token_address = :token_address
            ORDER BY tt.block_height, t.tx_index, tt.log_index
            """
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(sql, {"token_address": token_address})
                while True:
                    batch = result.mappings().fetchmany(self._fetch_batch_size)
                    if not batch:
                        break
                    for r in batch:
                        yield TokenTransferRecord(**r)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read transfers of {token_address}: {exc}") from exc

    async def replace_token_balances(
        self,
        token_address: str,
        balances: Sequence[TokenBalanceRecord],
    ) -> None:
        insert_sql = text(
            """
            INSERT INTO token_balances (address, token_address, balance, last_updated)
            VALUES (:address, :token_address, :balance, :last_updated)
            """
        )
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    text("DELETE FROM token_balances WHERE token_address = :token_address"),
                    {"token_address": token_address},
                )
                if balances:
                    await conn.execute(
                        insert_sql,
                        [
                            {
                                "address": b.address,
                                "token_address": b.token_address,
                                "balance": b.balance,
                                "last_updated": b.last_updated,
                            }
                            for b in balances
                        ],
                    )
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not replace balances of {token_address}: {exc}") from exc

    # ---------------------------------------------------------------------
    # Verified contracts
    # ---------------------------------------------------------------------

    async def get_verified_contract(self, address: str) -> VerifiedContractRecord | None:
        sql = text(
            """
            SELECT
                address,
                name,
                source_code,
                abi,
                compiler_version,
                optimization,
                constructor_args,
                verified_at
            FROM contracts
            WHERE address = :address
            """
        ).columns(
            optimization=Boolean(),
            verified_at=DateTime(timezone=True),
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(sql, {"address": contract_key(address)})).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read verified contract {address}: {exc}") from exc

        if row is None:
            return None
        return VerifiedContractRecord(
            address=row["address"],
            name=row["name"],
            source_code=row["source_code"],
            abi=row["abi"],
            compiler_version=row["compiler_version"],
            optimization=bool(row["optimization"]),
            constructor_args=row["constructor_args"],
            verified_at=row["verified_at"],
        )

    async def upsert_verified_contract(self, contract: VerifiedContractRecord) -> None:
        params: dict[str, Any] = {
            "address": contract_key(contract.address),
            "name": contract.name,
            "source_code": contract.source_code,
            "abi": contract.abi,
            "compiler_version": contract.compiler_version,
            "optimization": contract.optimization,
            "constructor_args": contract.constructor_args,
            "verified_at": contract.verified_at or datetime.now(timezone.utc),
        }
        try:
            async with self._engine.begin() as conn:
                await conn.execute(_UPSERT_VERIFIED_CONTRACT_SQL, params)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not persist verified contract {contract.address}: {exc}") from exc


def _block_params(indexed: IndexedBlock) -> dict[str, Any]:
    b = indexed.block
    return {
        "height": b.height,
        "hash": b.hash,
        "parent_hash": b.parent_hash,
        "timestamp": b.timestamp,
        "miner": b.miner,
        "difficulty": b.difficulty,
        "gas_limit": b.gas_limit,
        "gas_used": b.gas_used,
        "tx_count": b.tx_count,
        "size": b.size,
        "nonce": b.nonce,
        "is_pos": b.is_pos,
        "block_reward": b.block_reward,
    }


def _transaction_params(t: TransactionRecord) -> dict[str, Any]:
    return {
        "hash": t.hash,
        "block_height": t.block_height,
        "block_hash": t.block_hash,
        "tx_index": t.tx_index,
        "from_address": t.from_address,
        "to_address": t.to_address,
        "value": t.value,
        "gas": t.gas,
        "gas_price": t.gas_price,
        "gas_used": t.gas_used,
        "nonce": t.nonce,
        "input": t.input,
        "status": t.status,
        "contract_address": t.contract_address,
        "timestamp": t.timestamp,
    }


def _token_params(t: TokenRecord) -> dict[str, Any]:
    return {
        "address": t.address,
        "name": t.name,
        "symbol": t.symbol,
        "decimals": t.decimals,
        "total_supply": t.total_supply,
    }


def _event_log_params(e: EventLogRecord) -> dict[str, Any]:
    return {
        "tx_hash": e.tx_hash,
        "log_index": e.log_index,
        "address": e.address,
        "topic0": e.topic(0),
        "topic1": e.topic(1),
        "topic2": e.topic(2),
        "topic3": e.topic(3),
        "data": e.data,
        "block_height": e.block_height,
        "timestamp": e.timestamp,
        "decoded_name": e.decoded_name,
        "decoded_args": json.dumps(e.decoded_args) if e.decoded_args is not None else None,
    }


def _transfer_params(t: TokenTransferRecord) -> dict[str, Any]:
    return {
        "tx_hash": t.tx_hash,
        "log_index": t.log_index,
        "token_address": t.token_address,
        "from_address": t.from_address,
        "to_address": t.to_address,
        "value": t.value,
        "block_height": t.block_height,
        "timestamp": t.timestamp,
    }
