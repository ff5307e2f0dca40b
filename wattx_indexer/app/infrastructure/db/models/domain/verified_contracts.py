from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, PrimaryKeyConstraint, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class VerifiedContractsDB(BaseDB):
    """
    Contracts whose source was verified out-of-band.

    The indexer only reads `abi` to decode event logs of these addresses.
    """

    __tablename__ = "contracts"
    __table_args__ = (PrimaryKeyConstraint("address"),)

    address: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-serialized ABI list
    abi: Mapped[str | None] = mapped_column(Text, nullable=True)
    compiler_version: Mapped[str | None] = mapped_column(Text, nullable=True)
    optimization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    constructor_args: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
    )
