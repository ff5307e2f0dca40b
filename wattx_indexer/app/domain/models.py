from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")

CURSOR_KEY = "last_block"
ZERO_ADDRESS = "0x" + "0" * 40


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """
    Tagged outcome of a single failable node call.

    Exactly one of `value` / `error` is meaningful: `ok` tells which.
    Callers fold failures explicitly with `unwrap_or`.
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: str | BaseException) -> "CallResult[T]":
        msg = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
        return cls(value=None, error=msg or "unknown error")

    def unwrap_or(self, default: T) -> T:
        if self.ok and self.value is not None:
            return self.value
        return default

    def map(self, fn: Callable[[T], U]) -> "CallResult[U]":
        if not self.ok:
            return CallResult(value=None, error=self.error)
        try:
            return CallResult.success(fn(self.value))  # type: ignore[arg-type]
        except (ValueError, TypeError) as exc:
            return CallResult.failure(exc)


@dataclass(frozen=True)
class BlockRecord:
    height: int
    hash: str
    parent_hash: str | None
    timestamp: int
    miner: str | None
    difficulty: str
    tx_count: int
    size: int
    nonce: str
    is_pos: int
    block_reward: str
    gas_limit: str = "0"
    gas_used: str = "0"


@dataclass(frozen=True)
class TransactionRecord:
    hash: str
    block_height: int
    block_hash: str
    tx_index: int
    from_address: str | None
    to_address: str | None
    value: str
    input: str
    contract_address: str | None
    timestamp: int
    status: int = 1
    gas: str = "0"
    gas_price: str = "0"
    gas_used: str = "0"
    nonce: int = 0


@dataclass(frozen=True)
class EventLogRecord:
    tx_hash: str
    log_index: int
    address: str | None
    topics: tuple[str, ...]
    data: str
    block_height: int
    timestamp: int
    decoded_name: str | None = None
    decoded_args: dict[str, Any] | None = None

    def topic(self, i: int) -> str | None:
        return self.topics[i] if i < len(self.topics) else None


@dataclass(frozen=True)
class TokenRecord:
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: str


@dataclass(frozen=True)
class TokenTransferRecord:
    tx_hash: str
    log_index: int
    token_address: str
    from_address: str
    to_address: str
    value: str
    block_height: int
    timestamp: int


@dataclass(frozen=True)
class TokenBalanceRecord:
    address: str
    token_address: str
    balance: str
    last_updated: int


@dataclass(frozen=True)
class VerifiedContractRecord:
    address: str
    name: str | None
    source_code: str | None
    abi: str | None
    compiler_version: str | None
    optimization: bool
    constructor_args: str | None
    verified_at: datetime | None = None


@dataclass
class IndexedBlock:
    """
    Everything produced for one block height; written by the store as one
    atomic unit, tokens before the transfers that reference them.
    """

    block: BlockRecord
    transactions: list[TransactionRecord] = field(default_factory=list)
    event_logs: list[EventLogRecord] = field(default_factory=list)
    tokens: list[TokenRecord] = field(default_factory=list)
    token_transfers: list[TokenTransferRecord] = field(default_factory=list)

    @property
    def touched_tokens(self) -> set[str]:
        return {t.token_address for t in self.token_transfers}
