import pytest

from wattx_indexer.app.application.services.sync_chain import ChainSync
from wattx_indexer.app.config import settings
from wattx_indexer.app.infrastructure.adapters.block_indexer import NodeBlockIndexer
from wattx_indexer.app.infrastructure.adapters.index_store import SqlAlchemyIndexStore
from wattx_indexer.app.infrastructure.factories.chain_sync_factory import (
    chain_sync_factory,
    index_store_factory,
    indexer_components_factory,
    sync_policy_from_settings,
)


@pytest.mark.asyncio
async def test_unknown_store_backend_is_rejected(engine):
    with pytest.raises(ValueError, match="Unsupported index store backend"):
        index_store_factory("mongo", engine)


@pytest.mark.asyncio
async def test_sqlalchemy_backend(engine):
    assert isinstance(index_store_factory("sqlalchemy", engine), SqlAlchemyIndexStore)


def test_policy_overrides_ignore_none():
    policy = sync_policy_from_settings(batch_size=3, start_height=None)

    assert policy.batch_size == 3
    assert policy.start_height == settings.start_height
    assert policy.retry_max_delay == settings.sync_retry_max_delay


@pytest.mark.asyncio
async def test_components_share_node_and_store(node, engine):
    components = indexer_components_factory(
        backend="sqlalchemy",
        engine=engine,
        node=node,
        probe_created_contracts=False,
    )

    assert components.node is node
    assert isinstance(components.indexer, NodeBlockIndexer)
    assert components.indexer._store is components.store


@pytest.mark.asyncio
async def test_wired_sync_indexes_from_fake_node(node, engine):
    for h in range(3):
        node.add_block(h)
    sync = chain_sync_factory(
        backend="sqlalchemy",
        engine=engine,
        node=node,
        policy=sync_policy_from_settings(batch_size=5, start_height=0),
    )

    assert isinstance(sync, ChainSync)
    result = await sync.run_once()

    assert (result.from_height, result.to_height) == (0, 2)
