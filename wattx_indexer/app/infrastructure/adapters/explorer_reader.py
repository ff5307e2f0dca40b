from __future__ import annotations

import json
import logging
from typing import Any, Final

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from wattx_indexer.app.domain.errors import StoreError
from wattx_indexer.app.domain.models import CURSOR_KEY
from wattx_indexer.app.infrastructure.db.models import (
    BlocksDB,
    EventLogsDB,
    IndexerStateDB,
    TokenBalancesDB,
    TokensDB,
    TokenTransfersDB,
    TransactionsDB,
)
from wattx_indexer.app.infrastructure.decoders.abi_words import contract_key, normalize_address

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE: Final[int] = 100
DEFAULT_PAGE_SIZE: Final[int] = 25

Row = dict[str, Any]


def _page(limit: int | None, offset: int | None) -> tuple[int, int]:
    lim = DEFAULT_PAGE_SIZE if not limit or limit <= 0 else min(limit, MAX_PAGE_SIZE)
    off = max(offset or 0, 0)
    return lim, off


class SqlAlchemyExplorerReader:
    """
    Read-only query surface served to the HTTP read API.

    Only committed rows are visible: the writer commits one block per
    transaction, so a reader never sees a half-written block.
    """

    def __init__(self, *, engine: AsyncEngine) -> None:
        self._engine = engine

    async def _all(self, stmt: Select[Any]) -> list[Row]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return [dict(r) for r in result.mappings().all()]
        except SQLAlchemyError as exc:
            raise StoreError(f"Read query failed: {exc}") from exc

    async def _one(self, stmt: Select[Any]) -> Row | None:
        rows = await self._all(stmt.limit(1))
        return rows[0] if rows else None

    # ---------------------------------------------------------------------
    # Blocks
    # ---------------------------------------------------------------------

    async def latest_blocks(self, limit: int = 10) -> list[Row]:
        lim, _ = _page(limit, 0)
        stmt = select(BlocksDB.__table__).order_by(BlocksDB.height.desc()).limit(lim)
        return await self._all(stmt)

    async def block_by_height(self, height: int) -> Row | None:
        return await self._one(select(BlocksDB.__table__).where(BlocksDB.height == height))

    async def block_by_hash(self, block_hash: str) -> Row | None:
        return await self._one(select(BlocksDB.__table__).where(BlocksDB.hash == block_hash.lower()))

    # ---------------------------------------------------------------------
    # Transactions
    # ---------------------------------------------------------------------

    async def transaction(self, tx_hash: str) -> Row | None:
        return await self._one(
            select(TransactionsDB.__table__).where(TransactionsDB.hash == tx_hash.lower())
        )

    async def transactions_by_block(self, height: int) -> list[Row]:
        stmt = (
            select(TransactionsDB.__table__)
            .where(TransactionsDB.block_height == height)
            .order_by(TransactionsDB.tx_index)
        )
        return await self._all(stmt)

    async def transactions_by_address(
        self,
        address: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        lim, off = _page(limit, offset)
        addr = normalize_address(address)
        stmt = (
            select(TransactionsDB.__table__)
            .where(or_(TransactionsDB.from_address == addr, TransactionsDB.to_address == addr))
            .order_by(TransactionsDB.block_height.desc(), TransactionsDB.tx_index.desc())
            .limit(lim)
            .offset(off)
        )
        return await self._all(stmt)

    # ---------------------------------------------------------------------
    # Logs / tokens
    # ---------------------------------------------------------------------

    async def logs_by_address(
        self,
        address: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        lim, off = _page(limit, offset)
        stmt = (
            select(EventLogsDB.__table__)
            .where(EventLogsDB.address == contract_key(address))
            .order_by(EventLogsDB.block_height.desc(), EventLogsDB.log_index.desc())
            .limit(lim)
            .offset(off)
        )
        rows = await self._all(stmt)
        for r in rows:
            if r.get("decoded_args"):
                r["decoded_args"] = json.loads(r["decoded_args"])
        return rows

    async def token(self, address: str) -> Row | None:
        return await self._one(select(TokensDB.__table__).where(TokensDB.address == contract_key(address)))

    async def token_transfers(
        self,
        token_address: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        lim, off = _page(limit, offset)
        stmt = (
            select(
                TokenTransfersDB.__table__,
                TokensDB.name,
                TokensDB.symbol,
                TokensDB.decimals,
            )
            .join(TokensDB, TokensDB.address == TokenTransfersDB.token_address)
            .where(TokenTransfersDB.token_address == contract_key(token_address))
            .order_by(TokenTransfersDB.block_height.desc(), TokenTransfersDB.log_index.desc())
            .limit(lim)
            .offset(off)
        )
        return await self._all(stmt)

    async def token_holders(
        self,
        token_address: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        lim, off = _page(limit, offset)
        stmt = select(TokenBalancesDB.address, TokenBalancesDB.balance).where(
            TokenBalancesDB.token_address == contract_key(token_address),
            TokenBalancesDB.balance != "0",
        )
        rows = await self._all(stmt)
        # decimal strings exceed SQLite's integer range; sort numerically here
        rows.sort(key=lambda r: int(r["balance"]), reverse=True)
        return rows[off : off + lim]

    async def token_balances_of(self, address: str) -> list[Row]:
        stmt = (
            select(
                TokenBalancesDB.__table__,
                TokensDB.name,
                TokensDB.symbol,
                TokensDB.decimals,
            )
            .join(TokensDB, TokensDB.address == TokenBalancesDB.token_address)
            .where(TokenBalancesDB.address == _holder_key(address))
            .order_by(TokenBalancesDB.token_address)
        )
        return await self._all(stmt)

    # ---------------------------------------------------------------------
    # Health / stats
    # ---------------------------------------------------------------------

    async def last_indexed_height(self) -> int | None:
        row = await self._one(select(IndexerStateDB.value).where(IndexerStateDB.key == CURSOR_KEY))
        return int(row["value"]) if row else None

    async def stats(self) -> Row:
        stmt = select(
            select(func.max(BlocksDB.height)).scalar_subquery().label("latest_block"),
            select(func.count()).select_from(TransactionsDB).scalar_subquery().label("total_txs"),
            select(func.count(func.distinct(TransactionsDB.contract_address)))
            .where(TransactionsDB.contract_address.is_not(None))
            .scalar_subquery()
            .label("total_contracts"),
            select(func.count()).select_from(TokensDB).scalar_subquery().label("total_tokens"),
        )
        row = await self._one(stmt)
        return row or {}


def _holder_key(address: str) -> str:
    """Holders come from Transfer topics: 0x-prefixed lower-case hex."""
    addr = address.lower()
    return addr if addr.startswith("0x") else "0x" + addr
