from __future__ import annotations

import logging
from typing import Any

from wattx_indexer.app.domain.errors import IndexerError
from wattx_indexer.app.infrastructure.adapters.explorer_reader import SqlAlchemyExplorerReader
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.factories.node_factory import chain_node_factory

logger = logging.getLogger(__name__)


async def status_task() -> dict[str, Any]:
    """
    Snapshot of the index next to the node tip.

    The node being unreachable is reported (chain_height=None), not raised.
    """
    engine = create_app_async_engine()
    try:
        await init_schema(engine)
        reader = SqlAlchemyExplorerReader(engine=engine)
        stats = await reader.stats()
        last_indexed = await reader.last_indexed_height()

        chain_height: int | None
        try:
            chain_height = await chain_node_factory().get_chain_height()
        except IndexerError as exc:
            logger.warning("Node not reachable: %s", exc)
            chain_height = None
    finally:
        await engine.dispose()

    status: dict[str, Any] = {
        "last_indexed_block": last_indexed,
        "chain_height": chain_height,
        "blocks_behind": (
            chain_height - last_indexed
            if chain_height is not None and last_indexed is not None
            else None
        ),
        **stats,
    }
    return status
