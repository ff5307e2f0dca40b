import pytest

from wattx_indexer.app.domain.models import BlockRecord, IndexedBlock, TokenRecord
from wattx_indexer.app.infrastructure.fetchers.token_metadata_fetcher import (
    NodeTokenMetadataFetcher,
)

TOKEN = "5a" * 20


@pytest.mark.asyncio
async def test_fetcher_reads_standard_metadata(node):
    node.add_token(TOKEN, name="Wrapped WATTx", symbol="WWTX", decimals=8, total_supply=21 * 10**14)
    fetcher = NodeTokenMetadataFetcher(node=node)

    assert (await fetcher.fetch_name(TOKEN)).value == "Wrapped WATTx"
    assert (await fetcher.fetch_symbol(TOKEN)).value == "WWTX"
    assert (await fetcher.fetch_decimals(TOKEN)).value == 8
    assert (await fetcher.fetch_total_supply(TOKEN)).value == str(21 * 10**14)


@pytest.mark.asyncio
async def test_fetcher_bytes32_symbol_and_bad_decimals(node):
    node.call_outputs[(TOKEN, "95d89b41")] = "544b4e".ljust(64, "0")
    node.call_outputs[(TOKEN, "313ce567")] = f"{300:064x}"
    node.call_outputs[(TOKEN, "06fdde03")] = ""
    fetcher = NodeTokenMetadataFetcher(node=node)

    assert (await fetcher.fetch_symbol(TOKEN)).value == "TKN"
    assert not (await fetcher.fetch_decimals(TOKEN)).ok
    assert not (await fetcher.fetch_name(TOKEN)).ok
    assert not (await fetcher.fetch_total_supply(TOKEN)).ok


@pytest.mark.asyncio
async def test_detect_token_probes_once(node, token_discovery):
    node.add_token(TOKEN)

    first = await token_discovery.detect_token(TOKEN)
    second = await token_discovery.detect_token("0x" + TOKEN.upper())

    assert first == second
    assert first == TokenRecord(
        address=TOKEN,
        name="Test Token",
        symbol="TST",
        decimals=18,
        total_supply=str(10**24),
    )
    assert node.probe_calls(TOKEN) == 4


@pytest.mark.asyncio
async def test_detect_token_uses_placeholders_when_probes_fail(node, token_discovery):
    token = await token_discovery.detect_token(TOKEN)

    assert token == TokenRecord(
        address=TOKEN,
        name="Unknown",
        symbol="???",
        decimals=18,
        total_supply="0",
    )


@pytest.mark.asyncio
async def test_detect_token_prefers_stored_row(node, store, token_discovery):
    stored = TokenRecord(address=TOKEN, name="Stored", symbol="STO", decimals=2, total_supply="5")
    block = BlockRecord(
        height=0,
        hash="00" * 32,
        parent_hash=None,
        timestamp=0,
        miner=None,
        difficulty="1",
        tx_count=0,
        size=0,
        nonce="0",
        is_pos=0,
        block_reward="0",
    )
    await store.write_block(IndexedBlock(block=block, tokens=[stored]))

    token = await token_discovery.detect_token(TOKEN)

    assert token.name == "Stored"
    assert node.probe_calls(TOKEN) == 0


@pytest.mark.asyncio
async def test_created_contract_without_code_is_not_a_token(node, token_discovery):
    assert await token_discovery.probe_created_contract(TOKEN) is None
    assert node.probe_calls(TOKEN) == 0


@pytest.mark.asyncio
async def test_created_contract_answering_no_probe_is_not_a_token(node, token_discovery):
    node.code[TOKEN] = "6080"

    assert await token_discovery.probe_created_contract(TOKEN) is None
    # rejection is remembered
    assert await token_discovery.probe_created_contract(TOKEN) is None
    assert node.probe_calls(TOKEN) == 4


@pytest.mark.asyncio
async def test_created_contract_with_metadata_is_a_token(node, token_discovery):
    node.add_token(TOKEN, symbol="NEW")

    token = await token_discovery.probe_created_contract(TOKEN)

    assert token is not None
    assert token.symbol == "NEW"
