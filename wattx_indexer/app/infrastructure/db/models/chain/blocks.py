from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class BlocksDB(BaseDB):
    """
    One row per indexed block height.

    Re-indexing a height overwrites the row in place (upsert on height), so
    the table never holds two headers for the same height.
    """

    __tablename__ = "blocks"
    __table_args__ = (
        PrimaryKeyConstraint("height"),
        UniqueConstraint("hash"),
        # latest-blocks listing and time-range lookups
        Index("ix_blocks_timestamp", "timestamp"),
    )
    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------
    height: Mapped[int] = mapped_column(BigInteger, nullable=False, autoincrement=False)
    hash: Mapped[str] = mapped_column(Text, nullable=False)
    parent_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    # -------------------------------------------------------------------------
    # Header
    # -------------------------------------------------------------------------
    # unix seconds, as reported by the node
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    miner: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    gas_limit: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    gas_used: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    tx_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nonce: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    # -------------------------------------------------------------------------
    # Consensus
    # -------------------------------------------------------------------------
    # 1 = proof-of-stake, 0 = proof-of-work
    is_pos: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    # base units, decimal string
    block_reward: Mapped[str] = mapped_column(Text, nullable=False, default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
    )
