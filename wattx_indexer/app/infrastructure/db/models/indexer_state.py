from __future__ import annotations

from sqlalchemy import PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from wattx_indexer.app.infrastructure.db.db_base import BaseDB


class IndexerStateDB(BaseDB):
    """
    Key/value process-restart state.

    The only key in use is "last_block": the height of the last block of the
    last fully persisted batch.
    """

    __tablename__ = "indexer_state"
    __table_args__ = (PrimaryKeyConstraint("key"),)

    key: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
