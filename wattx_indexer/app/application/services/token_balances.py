from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from wattx_indexer.app.domain.models import ZERO_ADDRESS, TokenBalanceRecord, TokenTransferRecord
from wattx_indexer.app.domain.ports.out import IndexStore

logger = logging.getLogger(__name__)


@dataclass
class _Holding:
    balance: int = 0
    last_updated: int = 0


class BalanceLedger:
    """
    Replays transfers in chain order into per-holder balances.

    The zero address is the mint source / burn sink and never holds a balance.
    """

    def __init__(self, token_address: str) -> None:
        self.token_address = token_address
        self.transfers_applied = 0
        self._holdings: dict[str, _Holding] = {}

    def apply(self, t: TokenTransferRecord) -> None:
        try:
            amount = int(t.value)
        except (TypeError, ValueError):
            logger.warning("Skipping transfer %s:%s with bad value %r", t.tx_hash, t.log_index, t.value)
            return

        if t.from_address and t.from_address != ZERO_ADDRESS:
            self._touch(t.from_address, -amount, t.timestamp)
        if t.to_address and t.to_address != ZERO_ADDRESS:
            self._touch(t.to_address, amount, t.timestamp)
        self.transfers_applied += 1

    def records(self) -> list[TokenBalanceRecord]:
        """
        Non-zero balances only. A negative balance means history is missing
        (e.g. indexing started above genesis) and is dropped with a warning.
        """
        out: list[TokenBalanceRecord] = []
        for holder, h in sorted(self._holdings.items()):
            if h.balance == 0:
                continue
            if h.balance < 0:
                logger.warning(
                    "Negative balance %s for %s on token %s (incomplete history), omitted",
                    h.balance,
                    holder,
                    self.token_address,
                )
                continue
            out.append(
                TokenBalanceRecord(
                    address=holder,
                    token_address=self.token_address,
                    balance=str(h.balance),
                    last_updated=h.last_updated,
                )
            )
        return out

    def _touch(self, holder: str, delta: int, timestamp: int) -> None:
        h = self._holdings.setdefault(holder, _Holding())
        h.balance += delta
        h.last_updated = max(h.last_updated, timestamp)


def compute_token_balances(
    transfers: Iterable[TokenTransferRecord],
    *,
    token_address: str,
) -> list[TokenBalanceRecord]:
    ledger = BalanceLedger(token_address)
    for t in transfers:
        ledger.apply(t)
    return ledger.records()


async def refresh_token_balances(*, store: IndexStore, token_address: str) -> int:
    """
    Recompute and replace the balance rows of one token from its stored
    transfers. Idempotent; returns the number of holders written.
    """
    ledger = BalanceLedger(token_address)
    async for t in store.iter_token_transfers(token_address):
        ledger.apply(t)

    balances = ledger.records()
    await store.replace_token_balances(token_address, balances)
    logger.debug(
        "Refreshed balances for %s: %s holders from %s transfers",
        token_address,
        len(balances),
        ledger.transfers_applied,
    )
    return len(balances)


async def refresh_all_token_balances(*, store: IndexStore) -> int:
    tokens = await store.list_token_addresses()
    total = 0
    for token_address in tokens:
        total += await refresh_token_balances(store=store, token_address=token_address)
    logger.info("Refreshed balances for %s tokens (%s holders)", len(tokens), total)
    return total
