from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class TokenTransfersDB(BaseDB):
    """
    Transfer(address,address,uint256) events projected 1:1 from event_logs.

    Always references an existing tokens row; the token is written first in
    the same transaction as the transfer.
    """

    __tablename__ = "token_transfers"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index"),
        # token page / balance replay: chain order per token
        Index("ix_token_transfers_token_block", "token_address", "block_height", "log_index"),
        Index("ix_token_transfers_from", "from_address"),
        Index("ix_token_transfers_to", "to_address"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    tx_hash: Mapped[str] = mapped_column(
        Text,
        ForeignKey("transactions.hash"),
        nullable=False,
    )
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    token_address: Mapped[str] = mapped_column(
        Text,
        ForeignKey("tokens.address"),
        nullable=False,
    )
    # 0x-prefixed, lower-case
    from_address: Mapped[str] = mapped_column(Text, nullable=False)
    to_address: Mapped[str] = mapped_column(Text, nullable=False)
    # raw units, decimal string
    value: Mapped[str] = mapped_column(Text, nullable=False)

    block_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
