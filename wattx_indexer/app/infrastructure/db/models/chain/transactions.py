from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class TransactionsDB(BaseDB):
    """
    One row per transaction, keyed by txid.

    from/to/value are projections of the first output (the chain is UTXO
    based); to_address IS NULL with contract_address set denotes a contract
    creation.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        PrimaryKeyConstraint("hash"),
        # block page: transactions in block order
        Index("ix_transactions_block", "block_height", "tx_index"),
        # address page: from OR to, newest first
        Index("ix_transactions_from", "from_address", "block_height", "tx_index"),
        Index("ix_transactions_to", "to_address", "block_height", "tx_index"),
        Index("ix_transactions_contract", "contract_address"),
    )

    hash: Mapped[str] = mapped_column(Text, nullable=False)

    block_height: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("blocks.height"),
        nullable=False,
    )
    block_hash: Mapped[str] = mapped_column(Text, nullable=False)
    tx_index: Mapped[int] = mapped_column(Integer, nullable=False)

    from_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    to_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    # base units, decimal string
    value: Mapped[str] = mapped_column(Text, nullable=False, default="0")

    gas: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    gas_price: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    gas_used: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    nonce: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    input: Mapped[str] = mapped_column(Text, nullable=False, default="0x")
    # 1 = success, 0 = excepted
    status: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    contract_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
