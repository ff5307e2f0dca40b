from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine

from wattx_indexer.app.application.services.sync_chain import ChainSync, SyncPolicy
from wattx_indexer.app.application.services.token_discovery import TokenDiscovery
from wattx_indexer.app.config import settings
from wattx_indexer.app.domain.ports.out import BlockIndexer, ChainNode, IndexStore
from wattx_indexer.app.infrastructure.adapters.block_indexer import NodeBlockIndexer
from wattx_indexer.app.infrastructure.adapters.index_store import SqlAlchemyIndexStore
from wattx_indexer.app.infrastructure.fetchers.token_metadata_fetcher import (
    NodeTokenMetadataFetcher,
)


@dataclass
class IndexerComponents:
    node: ChainNode
    store: IndexStore
    indexer: BlockIndexer


IndexStoreFactory = Callable[[AsyncEngine], IndexStore]

_INDEX_STORE_REGISTRY: Dict[str, IndexStoreFactory] = {
    "sqlalchemy": lambda engine: SqlAlchemyIndexStore(engine=engine),
}


def index_store_factory(backend: str, engine: AsyncEngine) -> IndexStore:
    try:
        factory = _INDEX_STORE_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported index store backend: {backend!r}")
    return factory(engine)


def indexer_components_factory(
    *,
    backend: str,
    engine: AsyncEngine,
    node: ChainNode,
    probe_created_contracts: bool | None = None,
) -> IndexerComponents:
    """
    Wire the block indexing pipeline for the given store backend:
    - index store adapter,
    - token metadata fetcher (callcontract probes) + token discovery,
    - block indexer adapter (decode + receipts + token resolution).
    """
    store = index_store_factory(backend, engine)
    discovery = TokenDiscovery(
        store=store,
        fetcher=NodeTokenMetadataFetcher(node=node),
        node=node,
    )
    if probe_created_contracts is None:
        probe_created_contracts = settings.probe_created_contracts

    indexer = NodeBlockIndexer(
        node=node,
        store=store,
        token_discovery=discovery,
        probe_created_contracts=probe_created_contracts,
    )
    return IndexerComponents(node=node, store=store, indexer=indexer)


def sync_policy_from_settings(**overrides) -> SyncPolicy:
    values = {
        "batch_size": settings.sync_batch_size,
        "poll_interval": settings.sync_poll_interval,
        "retry_delay": settings.sync_retry_delay,
        "retry_max_delay": settings.sync_retry_max_delay,
        "start_height": settings.start_height,
        "refresh_balances": settings.refresh_token_balances,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SyncPolicy(**values)


def chain_sync_factory(
    *,
    backend: str,
    engine: AsyncEngine,
    node: ChainNode,
    policy: SyncPolicy | None = None,
) -> ChainSync:
    components = indexer_components_factory(backend=backend, engine=engine, node=node)
    return ChainSync(
        node=components.node,
        store=components.store,
        indexer=components.indexer,
        policy=policy or sync_policy_from_settings(),
    )
