import logging
from collections import Counter
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import text

from wattx_indexer.app.application.services.sync_chain import ChainSync, SyncPolicy
from wattx_indexer.app.application.services.token_discovery import TokenDiscovery
from wattx_indexer.app.domain.errors import NodeRpcError, NodeUnavailableError
from wattx_indexer.app.domain.models import CallResult
from wattx_indexer.app.domain.rpc_types import RpcBlock, RpcReceipt, parse_rpc
from wattx_indexer.app.infrastructure.adapters.block_indexer import NodeBlockIndexer
from wattx_indexer.app.infrastructure.adapters.explorer_reader import SqlAlchemyExplorerReader
from wattx_indexer.app.infrastructure.adapters.index_store import SqlAlchemyIndexStore
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.decoders.transfer_decoder import TRANSFER_TOPIC
from wattx_indexer.app.infrastructure.fetchers.token_metadata_fetcher import (
    NodeTokenMetadataFetcher,
)

GENESIS_TIME = 1_700_000_000


# Configure logging for tests
@pytest.fixture(autouse=True)
def configure_logging():
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    yield


class FakeNode:
    """
    In-memory stand-in for the daemon's RPC surface.

    Blocks / receipts are stored as raw JSON-shaped dicts and go through the
    same pydantic parsing as real responses.
    """

    def __init__(self) -> None:
        self.blocks: dict[int, dict[str, Any]] = {}
        self.receipts: dict[str, list[dict[str, Any]]] = {}
        self.call_outputs: dict[tuple[str, str], str] = {}
        self.code: dict[str, str] = {}
        self.tip: int | None = None
        self.unavailable = False
        self.failing_heights: set[int] = set()
        self.failing_receipts: set[str] = set()
        self.contract_calls: Counter = Counter()

    # ------------------------------------------------------------------
    # ChainNode
    # ------------------------------------------------------------------

    async def get_chain_height(self) -> int:
        if self.unavailable:
            raise NodeUnavailableError("getblockcount: connection refused")
        if self.tip is not None:
            return self.tip
        return max(self.blocks, default=-1)

    async def get_block(self, height: int) -> RpcBlock | None:
        if self.unavailable or height in self.failing_heights:
            raise NodeUnavailableError(f"getblock {height}: connection reset")
        payload = self.blocks.get(height)
        if payload is None:
            return None
        return parse_rpc(RpcBlock, payload)

    async def get_transaction_receipts(self, txid: str) -> list[RpcReceipt]:
        if txid in self.failing_receipts:
            raise NodeRpcError(-5, "No such mempool or blockchain transaction", method="gettransactionreceipt")
        return [parse_rpc(RpcReceipt, r) for r in self.receipts.get(txid, [])]

    async def get_contract_code(self, address: str) -> CallResult[str]:
        return CallResult.success(self.code.get(address, ""))

    async def call_contract(self, address: str, data: str) -> CallResult[str]:
        self.contract_calls[(address, data)] += 1
        output = self.call_outputs.get((address, data))
        if output is None:
            return CallResult.failure("execution reverted")
        return CallResult.success(output)

    async def to_hex_address(self, address: str) -> CallResult[str]:
        return CallResult.success(address.lower())

    async def from_hex_address(self, hex_address: str) -> CallResult[str]:
        return CallResult.success(hex_address)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @staticmethod
    def topic(address: str) -> str:
        return "0x" + "0" * 24 + address.lower().removeprefix("0x")

    @staticmethod
    def word(value: int) -> str:
        return f"{value:064x}"

    @staticmethod
    def abi_string(value: str) -> str:
        payload = value.encode().hex()
        padded = payload.ljust(((len(payload) + 63) // 64) * 64 or 64, "0")
        return FakeNode.word(32) + FakeNode.word(len(value.encode())) + padded

    def add_block(
        self,
        height: int,
        txs: list[dict[str, Any]] | None = None,
        *,
        pos: bool = False,
    ) -> dict[str, Any]:
        coinbase = {
            "txid": f"{height:064x}",
            "vin": [{"coinbase": "03" + f"{height:06x}"}],
            "vout": [
                {
                    "value": 0 if pos else 4.0,
                    "n": 0,
                    "scriptPubKey": {"type": "pubkeyhash", "address": "WMiner1111111111111111111111111111"},
                }
            ],
        }
        block = {
            "hash": f"b{height:063x}",
            "height": height,
            "time": GENESIS_TIME + height * 60,
            "previousblockhash": f"b{height - 1:063x}" if height > 0 else None,
            "size": 250,
            "nonce": 0,
            "difficulty": 1.5,
            "flags": "proof-of-stake" if pos else "proof-of-work",
            "tx": [coinbase, *(txs or [])],
        }
        self.blocks[height] = block
        return block

    def transfer_tx(
        self,
        txid: str,
        *,
        token: str,
        sender: str,
        recipient: str,
        value: int,
        gas_used: int = 51_234,
    ) -> dict[str, Any]:
        self.receipts[txid] = [
            {
                "contractAddress": token,
                "gasUsed": gas_used,
                "excepted": "None",
                "log": [
                    {
                        "address": token,
                        "topics": [
                            TRANSFER_TOPIC,
                            self.topic(sender),
                            self.topic(recipient),
                        ],
                        "data": self.word(value),
                    }
                ],
            }
        ]
        return {
            "txid": txid,
            "vin": [{"txid": "ab" * 32, "vout": 1}],
            "vout": [
                {
                    "value": 0,
                    "n": 0,
                    "scriptPubKey": {"type": "call", "hex": "0104" + "a9059cbb" + token},
                }
            ],
        }

    def add_token(
        self,
        address: str,
        *,
        name: str = "Test Token",
        symbol: str = "TST",
        decimals: int = 18,
        total_supply: int = 10**24,
    ) -> None:
        self.code[address] = "6080604052"
        self.call_outputs[(address, "06fdde03")] = self.abi_string(name)
        self.call_outputs[(address, "95d89b41")] = self.abi_string(symbol)
        self.call_outputs[(address, "313ce567")] = self.word(decimals)
        self.call_outputs[(address, "18160ddd")] = self.word(total_supply)

    def probe_calls(self, address: str) -> int:
        return sum(n for (addr, _), n in self.contract_calls.items() if addr == address)


@pytest.fixture
def node():
    return FakeNode()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_app_async_engine(database_url=f"sqlite+aiosqlite:///{tmp_path / 'explorer.db'}")
    await init_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return SqlAlchemyIndexStore(engine=engine)


@pytest.fixture
def reader(engine):
    return SqlAlchemyExplorerReader(engine=engine)


@pytest.fixture
def token_discovery(node, store):
    return TokenDiscovery(store=store, fetcher=NodeTokenMetadataFetcher(node=node), node=node)


@pytest.fixture
def block_indexer(node, store, token_discovery):
    return NodeBlockIndexer(node=node, store=store, token_discovery=token_discovery)


@pytest.fixture
def make_sync(node, store, block_indexer):
    def _make(**policy: Any) -> ChainSync:
        values: dict[str, Any] = {"poll_interval": 0.01, "retry_delay": 0.01, "retry_max_delay": 0.04}
        values.update(policy)
        return ChainSync(node=node, store=store, indexer=block_indexer, policy=SyncPolicy(**values))

    return _make


@pytest.fixture
def count_rows(engine):
    async def _count(table: str) -> int:
        async with engine.connect() as conn:
            return (await conn.execute(text(f"SELECT COUNT(*) FROM {table}"))).scalar_one()

    return _count
