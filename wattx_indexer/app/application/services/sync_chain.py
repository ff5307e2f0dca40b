from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field

from wattx_indexer.app.application.services.token_balances import refresh_token_balances
from wattx_indexer.app.domain.errors import IndexerError
from wattx_indexer.app.domain.ports.out import BlockIndexer, ChainNode, IndexStore

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "idle"
    CATCHING_UP = "catching_up"
    BACKING_OFF = "backing_off"


@dataclass(frozen=True)
class SyncPolicy:
    batch_size: int = 10
    poll_interval: float = 2.0
    retry_delay: float = 5.0
    retry_max_delay: float = 60.0
    start_height: int = 0
    refresh_balances: bool = True

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.start_height < 0:
            raise ValueError("start_height must be non-negative")
        if self.poll_interval < 0 or self.retry_delay < 0 or self.retry_max_delay < 0:
            raise ValueError("Delays must be non-negative")


@dataclass
class BatchResult:
    from_height: int
    to_height: int
    indexed: int = 0
    skipped: list[int] = field(default_factory=list)
    touched_tokens: set[str] = field(default_factory=set)
    completed: bool = True


class ChainSync:
    """
    Follows the node tip and feeds blocks into the index store.

    One iteration (run_once):
      1) read cursor + node height;
      2) pick the next range [cursor + 1, min(cursor + batch_size, height)];
      3) fetch/decode/write each block in ascending order (one atomic write
         per block; a height the node does not know is skipped with a warning);
      4) advance the cursor to the end of the range only after every block of
         the batch was written;
      5) recompute holder balances of tokens the batch touched.

    Any IndexerError during 1-4 aborts the batch without moving the cursor;
    run_forever then backs off exponentially and retries the same range.
    Stop is cooperative and observed between blocks and during sleeps.
    """

    def __init__(
        self,
        *,
        node: ChainNode,
        store: IndexStore,
        indexer: BlockIndexer,
        policy: SyncPolicy | None = None,
    ) -> None:
        self._node = node
        self._store = store
        self._indexer = indexer
        self._policy = policy or SyncPolicy()
        self._policy.validate()
        self._stop = asyncio.Event()
        self._failures = 0
        self.state = SyncState.IDLE

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def next_range(self) -> tuple[int, int] | None:
        cursor = await self._store.last_indexed_height()
        if cursor is None:
            cursor = self._policy.start_height - 1

        tip = await self._node.get_chain_height()
        if cursor >= tip:
            return None

        start = cursor + 1
        end = min(cursor + self._policy.batch_size, tip)
        return start, end

    async def index_range(self, from_height: int, to_height: int) -> BatchResult:
        """
        Index [from_height, to_height] without touching the cursor.

        Returns early (completed=False) when a stop was requested.
        """
        result = BatchResult(from_height=from_height, to_height=to_height)
        self._indexer.reset_caches()

        for height in range(from_height, to_height + 1):
            if self.stopping:
                result.completed = False
                break

            indexed = await self._indexer.fetch_and_decode(height)
            if indexed is None:
                logger.warning("Block %s not available on node, skipping", height)
                result.skipped.append(height)
                continue

            await self._store.write_block(indexed)
            result.indexed += 1
            result.touched_tokens |= indexed.touched_tokens

            if indexed.transactions:
                logger.debug(
                    "Indexed block %s (%s txs, %s logs, %s transfers)",
                    height,
                    len(indexed.transactions),
                    len(indexed.event_logs),
                    len(indexed.token_transfers),
                )

        return result

    async def run_once(self) -> BatchResult | None:
        """
        One batch. Returns None when already at the tip.
        Raises IndexerError when the batch failed; the cursor is then unchanged.
        """
        bounds = await self.next_range()
        if bounds is None:
            self.state = SyncState.IDLE
            return None

        self.state = SyncState.CATCHING_UP
        from_height, to_height = bounds
        result = await self.index_range(from_height, to_height)
        if not result.completed:
            return result

        await self._store.set_last_indexed_height(to_height)
        self._failures = 0
        logger.info(
            "Indexed blocks %s-%s (%s written, %s skipped)",
            from_height,
            to_height,
            result.indexed,
            len(result.skipped),
        )

        if self._policy.refresh_balances:
            await self._refresh_balances(result.touched_tokens)

        return result

    async def run_forever(self) -> None:
        logger.info(
            "Chain sync started (batch_size=%s, poll_interval=%ss)",
            self._policy.batch_size,
            self._policy.poll_interval,
        )
        while not self.stopping:
            try:
                result = await self.run_once()
            except IndexerError as exc:
                self._failures += 1
                self.state = SyncState.BACKING_OFF
                delay = self.backoff_delay()
                logger.error(
                    "Sync batch failed (attempt %s), retrying in %.1fs: %s",
                    self._failures,
                    delay,
                    exc,
                )
                await self._sleep(delay)
                continue

            if result is None:
                await self._sleep(self._policy.poll_interval)

        self.state = SyncState.IDLE
        logger.info("Chain sync stopped")

    def backoff_delay(self) -> float:
        if self._failures <= 0:
            return 0.0
        delay = self._policy.retry_delay * (2 ** (self._failures - 1))
        return min(delay, self._policy.retry_max_delay)

    async def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _refresh_balances(self, tokens: set[str]) -> None:
        for token_address in sorted(tokens):
            try:
                await refresh_token_balances(store=self._store, token_address=token_address)
            except IndexerError as exc:
                logger.warning("Balance refresh failed for token %s: %s", token_address, exc)


async def reindex_range(
    *,
    store: IndexStore,
    indexer: BlockIndexer,
    from_height: int,
    to_height: int,
    refresh_balances: bool = True,
) -> BatchResult:
    """
    Re-run indexing over an explicit range.

    Writes are upserts, so this is safe over already indexed heights. The
    cursor is left alone: the range may lie above it, and moving it would
    hide the heights in between from the sync loop.
    """
    if from_height < 0 or to_height < 0:
        raise ValueError("Block heights must be non-negative")
    if from_height > to_height:
        raise ValueError("from_height must be <= to_height")

    indexer.reset_caches()
    result = BatchResult(from_height=from_height, to_height=to_height)

    for height in range(from_height, to_height + 1):
        indexed = await indexer.fetch_and_decode(height)
        if indexed is None:
            logger.warning("Block %s not available on node, skipping", height)
            result.skipped.append(height)
            continue
        await store.write_block(indexed)
        result.indexed += 1
        result.touched_tokens |= indexed.touched_tokens

    if refresh_balances:
        for token_address in sorted(result.touched_tokens):
            await refresh_token_balances(store=store, token_address=token_address)

    logger.info(
        "Re-indexed blocks %s-%s (%s written, %s skipped)",
        from_height,
        to_height,
        result.indexed,
        len(result.skipped),
    )
    return result
