from types import SimpleNamespace

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web

from wattx_indexer.app.domain.errors import (
    DecodeError,
    NodeRpcError,
    NodeUnavailableError,
)
from wattx_indexer.app.infrastructure.factories.node_factory import make_async_web3
from wattx_indexer.app.infrastructure.fetchers.address_converter import AddressConverter
from wattx_indexer.app.infrastructure.fetchers.node_client import Web3ChainNode


class ScriptedProvider:
    """Answers make_request from a {method: response-or-exception} table."""

    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.requests: list[tuple[str, list]] = []

    async def make_request(self, method, params):
        self.requests.append((str(method), list(params)))
        response = self.responses[str(method)]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(params)
        return response


def _node(responses: dict) -> tuple[Web3ChainNode, ScriptedProvider]:
    provider = ScriptedProvider(responses)
    return Web3ChainNode(w3=SimpleNamespace(provider=provider)), provider


def _ok(result) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": result, "error": None}


def _err(code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": None, "error": {"code": code, "message": message}}


@pytest.mark.asyncio
async def test_get_block_fetches_by_hash_at_full_verbosity():
    node, provider = _node(
        {
            "getblockhash": _ok("ab" * 32),
            "getblock": _ok({"hash": "ab" * 32, "height": 12, "time": 1, "tx": []}),
        }
    )

    block = await node.get_block(12)

    assert block.height == 12
    assert provider.requests == [("getblockhash", [12]), ("getblock", ["ab" * 32, 2])]


@pytest.mark.asyncio
async def test_unknown_height_is_none():
    node, _ = _node({"getblockhash": _err(-8, "Block height out of range")})
    assert await node.get_block(99) is None


@pytest.mark.asyncio
async def test_transport_and_rpc_errors_are_mapped():
    node, _ = _node({"getblockcount": aiohttp.ClientConnectionError("refused")})
    with pytest.raises(NodeUnavailableError):
        await node.get_chain_height()

    node, _ = _node({"getblockcount": _err(-28, "Loading block index...")})
    with pytest.raises(NodeRpcError) as exc_info:
        await node.get_chain_height()
    assert exc_info.value.code == -28


@pytest.mark.asyncio
async def test_receipts_accept_single_object_and_reject_garbage():
    node, _ = _node({"gettransactionreceipt": _ok({"gasUsed": 21000, "excepted": "None", "log": []})})
    receipts = await node.get_transaction_receipts("aa" * 32)
    assert len(receipts) == 1 and receipts[0].gas_used == 21000

    node, _ = _node({"gettransactionreceipt": _ok([])})
    assert await node.get_transaction_receipts("aa" * 32) == []

    node, _ = _node({"gettransactionreceipt": _ok([{"gasUsed": "lots"}])})
    with pytest.raises(DecodeError):
        await node.get_transaction_receipts("aa" * 32)


@pytest.mark.asyncio
async def test_call_contract_reports_reverts_as_failures():
    node, _ = _node(
        {
            "callcontract": _ok(
                {"address": "5a" * 20, "executionResult": {"output": "", "excepted": "Revert"}}
            )
        }
    )
    result = await node.call_contract("5a" * 20, "06fdde03")
    assert not result.ok

    node, _ = _node(
        {
            "callcontract": _ok(
                {"address": "5a" * 20, "executionResult": {"output": "0012", "excepted": "None"}}
            )
        }
    )
    result = await node.call_contract("5a" * 20, "06fdde03")
    assert result.ok and result.value == "0012"


@pytest.mark.asyncio
async def test_address_converter_memoizes_and_falls_back():
    calls = {"n": 0}

    def _from_hex(params):
        calls["n"] += 1
        return _ok("WAddr" + params[0][:4])

    node, _ = _node({"fromhexaddress": _from_hex, "gethexaddress": _err(-5, "Invalid address")})
    converter = AddressConverter(node=node)

    assert await converter.to_base58("0x" + "AB" * 20) == "WAddrabab"
    assert await converter.to_base58("ab" * 20) == "WAddrabab"
    assert calls["n"] == 1
    # reverse lookup is served from the same memo
    assert await converter.to_hex("WAddrabab") == "ab" * 20
    # unknown base58 falls back to the input
    assert await converter.to_hex("WNope") == "WNope"


@pytest.mark.asyncio
async def test_detect_wallet_keeps_first_loaded_wallet():
    node, _ = _node({"listwallets": _ok(["miner", "cold"])})

    assert await node.detect_wallet() == "miner"
    assert node.wallet_name == "miner"


@pytest.mark.asyncio
async def test_detect_wallet_tolerates_rpc_error():
    node, _ = _node({"listwallets": _err(-32601, "Method not found")})

    assert await node.detect_wallet() is None
    assert node.wallet_name is None


@pytest_asyncio.fixture
async def daemon():
    """
    Local HTTP server answering like the daemon: results with 200, RPC errors
    with 500 and the error object as body.
    """
    answers: dict = {}

    async def handle(request: web.Request) -> web.StreamResponse:
        body = await request.json()
        status, payload = answers[body["method"]]
        if isinstance(payload, str):
            return web.Response(status=status, text=payload)
        return web.json_response({"jsonrpc": "2.0", "id": body.get("id"), **payload}, status=status)

    app = web.Application()
    app.router.add_post("/", handle)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]

    w3 = make_async_web3(rpc_url=f"http://{host}:{port}/", rpc_user="rpc", rpc_password="secret", timeout=5)
    yield Web3ChainNode(w3=w3), answers

    await runner.cleanup()


def _http_error(code: int, message: str) -> tuple[int, dict]:
    return 500, {"result": None, "error": {"code": code, "message": message}}


@pytest.mark.asyncio
async def test_http_500_height_out_of_range_is_a_missing_block(daemon):
    node, answers = daemon
    answers["getblockhash"] = _http_error(-8, "Block height out of range")

    assert await node.get_block(99) is None


@pytest.mark.asyncio
async def test_http_500_receipt_error_is_an_rpc_error(daemon):
    node, answers = daemon
    answers["gettransactionreceipt"] = _http_error(-1, "Events indexing disabled")

    with pytest.raises(NodeRpcError) as info:
        await node.get_transaction_receipts("d1" * 32)

    assert info.value.code == -1


@pytest.mark.asyncio
async def test_http_500_without_rpc_body_is_unavailable(daemon):
    node, answers = daemon
    answers["getblockcount"] = (500, "work queue depth exceeded")

    with pytest.raises(NodeUnavailableError):
        await node.get_chain_height()


@pytest.mark.asyncio
async def test_http_200_result_passes_through(daemon):
    node, answers = daemon
    answers["getblockcount"] = (200, {"result": 42, "error": None})

    assert await node.get_chain_height() == 42
