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


class EventLogsDB(BaseDB):
    """
    Event log entries emitted by contract executions, stored verbatim.

    Each row is uniquely identified by (tx_hash, log_index); log_index counts
    across all receipts of the transaction. Topics and data are lower-cased
    hex as reported by the node. decoded_name / decoded_args are filled only
    when the log could be decoded (verified ABI, or the Transfer signature).
    """

    __tablename__ = "event_logs"
    __table_args__ = (
        # Natural key; upserts conflict on it
        UniqueConstraint("tx_hash", "log_index"),
        # Typical lookup pattern: emitting contract, newest first
        Index("ix_event_logs_address_block", "address", "block_height", "log_index"),
        Index("ix_event_logs_topic0", "topic0"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    tx_hash: Mapped[str] = mapped_column(
        Text,
        ForeignKey("transactions.hash"),
        nullable=False,
    )
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    """Address of the contract that emitted the log."""
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    """topic0: keccak256 hash of the event signature."""
    topic0: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic1: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic2: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic3: Mapped[str | None] = mapped_column(Text, nullable=True)

    """Event data payload (ABI-encoded, non-indexed args)."""
    data: Mapped[str] = mapped_column(Text, nullable=False, default="")

    block_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    decoded_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON object
    decoded_args: Mapped[str | None] = mapped_column(Text, nullable=True)
