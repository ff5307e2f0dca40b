from __future__ import annotations

from wattx_indexer.app.application.services.block_bounds import resolve_block_bounds
from wattx_indexer.app.application.services.sync_chain import reindex_range
from wattx_indexer.app.config import settings
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.factories.chain_sync_factory import (
    indexer_components_factory,
)
from wattx_indexer.app.infrastructure.factories.node_factory import chain_node_factory


async def reindex_blocks_task(
    *,
    from_block: int | str,
    to_block: int | str,
    backend: str = "sqlalchemy",
) -> None:
    """
    Re-indexes an explicit block range (upserts, the cursor is not moved).

    from_block / to_block can be:
    - int (a specific block height),
    - "earliest" (the lowest indexed block, START_HEIGHT on an empty index),
    - "latest" (the node's current chain height).
    """
    engine = create_app_async_engine()
    try:
        await init_schema(engine)
        node = chain_node_factory()
        components = indexer_components_factory(backend=backend, engine=engine, node=node)

        resolved_from_block, resolved_to_block = await resolve_block_bounds(
            node=node,
            store=components.store,
            from_block=from_block,
            to_block=to_block,
            start_height=settings.start_height,
        )

        await reindex_range(
            store=components.store,
            indexer=components.indexer,
            from_height=resolved_from_block,
            to_height=resolved_to_block,
            refresh_balances=settings.refresh_token_balances,
        )
    finally:
        await engine.dispose()
