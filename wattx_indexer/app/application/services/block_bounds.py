from __future__ import annotations

from typing import Literal

from wattx_indexer.app.domain.ports.out import ChainNode, IndexStore


BlockSelector = int | str
_EARLIEST: Literal["earliest"] = "earliest"
_LATEST: Literal["latest"] = "latest"


def parse_block_selector(value: str | int) -> BlockSelector:
    """CLI helper: "123" -> 123, anything else is kept as a keyword."""
    if isinstance(value, int):
        return value
    v = value.strip()
    return int(v) if v.isdigit() else v


async def resolve_block_bounds(
    *,
    node: ChainNode,
    store: IndexStore,
    from_block: BlockSelector,
    to_block: BlockSelector,
    start_height: int = 0,
) -> tuple[int, int]:
    """
    Resolve from_block / to_block into concrete heights.

    - If both are ints -> they are returned as-is.
    - If from_block is "earliest" / "" -> lowest stored block height
      (start_height when nothing is stored yet).
    - If to_block is "latest" / ""     -> the node's current chain height.
    """
    if isinstance(from_block, int):
        fb = from_block
    else:
        fb_str = from_block.strip().lower()
        if fb_str not in ("", _EARLIEST):
            raise ValueError(f"Unsupported from_block value: {from_block!r}")
        lowest = await store.lowest_indexed_height()
        fb = lowest if lowest is not None else start_height

    if isinstance(to_block, int):
        tb = to_block
    else:
        tb_str = to_block.strip().lower()
        if tb_str not in ("", _LATEST):
            raise ValueError(f"Unsupported to_block value: {to_block!r}")
        tb = await node.get_chain_height()

    if fb < 0 or tb < 0:
        raise ValueError("Block heights must be non-negative")
    if fb > tb:
        raise ValueError(f"from_block ({fb}) must be <= to_block ({tb})")

    return fb, tb
