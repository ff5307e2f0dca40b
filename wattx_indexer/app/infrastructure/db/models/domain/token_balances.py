from __future__ import annotations

from sqlalchemy import BigInteger, Index, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class TokenBalancesDB(BaseDB):
    """
    Materialized holder balances, re-derived from token_transfers.

    Rows for a token are replaced wholesale by the balance derivation job;
    only non-zero balances are kept.
    """

    __tablename__ = "token_balances"
    __table_args__ = (
        PrimaryKeyConstraint("address", "token_address"),
        Index("ix_token_balances_token", "token_address"),
    )

    address: Mapped[str] = mapped_column(Text, nullable=False)
    token_address: Mapped[str] = mapped_column(Text, nullable=False)
    # raw units, decimal string
    balance: Mapped[str] = mapped_column(Text, nullable=False)
    # block timestamp of the last transfer that touched the holder
    last_updated: Mapped[int] = mapped_column(BigInteger, nullable=False)
