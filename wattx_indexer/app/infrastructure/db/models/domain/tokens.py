from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    PrimaryKeyConstraint,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class TokensDB(BaseDB):
    """
    Token metadata registry (QRC-20 / ERC-20 shaped contracts).

    One row = one contract address, discovered the first time it emits a
    Transfer (or when a freshly created contract answers token probes).
    Metadata is fetched once and never refreshed; failed probes leave the
    placeholders "Unknown" / "???" / 18 / "0".
    """

    __tablename__ = "tokens"
    __table_args__ = (
        PrimaryKeyConstraint("address"),
        Index("ix_tokens_symbol", "symbol"),
    )

    address: Mapped[str] = mapped_column(Text, nullable=False)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, nullable=False)
    # raw units, decimal string
    total_supply: Mapped[str] = mapped_column(Text, nullable=False, default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
    )
