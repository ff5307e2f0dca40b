from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from wattx_indexer.app.config import settings
from wattx_indexer.app.infrastructure.db.db_base import BaseDB

logger = logging.getLogger(__name__)


def create_app_async_engine(*, database_url: str | None = None, echo: bool = False) -> AsyncEngine:
    """
    Factory for AsyncEngine used by background tasks / indexers.

    Centralizing engine creation keeps connection handling consistent
    across tasks and makes it easier to tweak pool settings in one place.
    For SQLite the parent directory is created and every connection gets
    WAL journaling (readers never block on the writer) and enforced
    foreign keys.
    """
    url = make_url(database_url or settings.database_url)

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(url, echo=echo)
        event.listen(engine.sync_engine, "connect", _sqlite_on_connect)
        return engine

    return create_async_engine(
        url,  # postgresql+asyncpg://...
        echo=echo,
        pool_pre_ping=True,
    )


def _sqlite_on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


async def init_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet (local / test databases; production uses alembic)."""
    # registers every model on BaseDB.metadata
    import wattx_indexer.app.infrastructure.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(BaseDB.metadata.create_all)

    logger.info("Schema ready on %s", engine.url.render_as_string(hide_password=True))
