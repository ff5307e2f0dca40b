from __future__ import annotations

from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema


async def init_db_task(*, database_url: str | None = None) -> None:
    """Create the schema in place (local setups; deployments run alembic upgrade head)."""
    engine = create_app_async_engine(database_url=database_url)
    try:
        await init_schema(engine)
    finally:
        await engine.dispose()
