from __future__ import annotations

import asyncio
import logging
import signal

from wattx_indexer.app.application.services.sync_chain import ChainSync
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.factories.chain_sync_factory import (
    chain_sync_factory,
    sync_policy_from_settings,
)
from wattx_indexer.app.infrastructure.factories.node_factory import chain_node_factory

logger = logging.getLogger(__name__)


async def sync_chain_task(
    *,
    batch_size: int | None = None,
    start_height: int | None = None,
    once: bool = False,
    backend: str = "sqlalchemy",
) -> None:
    """
    Follows the chain tip and indexes every new block.

    - resumes from the stored cursor (or start_height on an empty index),
    - indexes in batches, advancing the cursor per completed batch,
    - backs off on node / store failures and retries the same range,
    - stops cleanly on SIGINT / SIGTERM (the in-flight block finishes).

    With once=True a single batch is indexed and the task returns.
    """
    engine = create_app_async_engine()
    try:
        await init_schema(engine)

        node = chain_node_factory()
        await node.detect_wallet()

        sync: ChainSync = chain_sync_factory(
            backend=backend,
            engine=engine,
            node=node,
            policy=sync_policy_from_settings(batch_size=batch_size, start_height=start_height),
        )

        if once:
            await sync.run_once()
            return

        _install_stop_handlers(sync)
        await sync.run_forever()
    finally:
        await engine.dispose()


def _install_stop_handlers(sync: ChainSync) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sync, sig)
        except NotImplementedError:
            # no loop signal handlers on Windows; Ctrl+C still raises KeyboardInterrupt
            pass


def _request_stop(sync: ChainSync, sig: signal.Signals) -> None:
    logger.info("Received %s, stopping after the current block", sig.name)
    sync.stop()
