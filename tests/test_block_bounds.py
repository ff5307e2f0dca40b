import pytest

from wattx_indexer.app.application.services.block_bounds import (
    parse_block_selector,
    resolve_block_bounds,
)


def test_parse_block_selector():
    assert parse_block_selector("42") == 42
    assert parse_block_selector(" latest ") == "latest"
    assert parse_block_selector(7) == 7


@pytest.mark.asyncio
async def test_keywords_resolve_against_store_and_node(node, store, make_sync):
    for h in range(3, 9):
        node.add_block(h)

    # nothing stored yet: earliest falls back to the configured start height
    assert await resolve_block_bounds(
        node=node, store=store, from_block="earliest", to_block="latest", start_height=3
    ) == (3, 8)

    await make_sync(start_height=3).run_once()
    node.add_block(9)

    assert await resolve_block_bounds(node=node, store=store, from_block="", to_block="") == (3, 9)
    assert await resolve_block_bounds(node=node, store=store, from_block=5, to_block=6) == (5, 6)


@pytest.mark.asyncio
async def test_bad_selectors(node, store):
    node.add_block(0)
    with pytest.raises(ValueError):
        await resolve_block_bounds(node=node, store=store, from_block="first", to_block=0)
    with pytest.raises(ValueError):
        await resolve_block_bounds(node=node, store=store, from_block=4, to_block=2)
