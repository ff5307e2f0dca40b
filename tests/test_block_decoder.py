from wattx_indexer.app.domain.rpc_types import RpcBlock, RpcReceipt, parse_rpc
from wattx_indexer.app.infrastructure.decoders.block_decoder import (
    apply_receipts,
    block_reward,
    decode_block_header,
    decode_event_logs,
    decode_token_transfer,
    decode_transaction,
)
from wattx_indexer.app.infrastructure.decoders.transfer_decoder import TransferDecoder

TOKEN = "5a" * 20
CONTRACT = "c0" * 20


def _coinstake(staked: float, paid: float) -> dict:
    return {
        "txid": "cs" + "0" * 62,
        "vin": [{"txid": "ee" * 32, "vout": 1, "prevout": {"value": staked}}],
        "vout": [
            {"value": 0, "n": 0, "scriptPubKey": {"type": "nonstandard"}},
            {"value": paid, "n": 1, "scriptPubKey": {"type": "pubkey", "address": "WStaker111"}},
        ],
    }


def test_pow_block_header(node):
    block = parse_rpc(RpcBlock, node.add_block(5))
    header = decode_block_header(block)

    assert header.height == 5
    assert header.is_pos == 0
    assert header.parent_hash == "b" + f"{4:063x}"
    assert header.miner == "WMiner1111111111111111111111111111"
    assert header.block_reward == "400000000"
    assert header.tx_count == 1


def test_pos_block_is_classified_and_rewarded(node):
    block = parse_rpc(RpcBlock, node.add_block(7, [_coinstake(100.0, 100.5)], pos=True))
    header = decode_block_header(block)

    assert header.is_pos == 1
    assert header.miner == "WStaker111"
    assert block_reward(block) == 50_000_000
    assert header.tx_count == 2


def test_pos_reward_without_prevout_is_zero(node):
    coinstake = _coinstake(100.0, 100.5)
    del coinstake["vin"][0]["prevout"]
    block = parse_rpc(RpcBlock, node.add_block(8, [coinstake], pos=True))
    assert block_reward(block) == 0


def test_contract_creation_transaction(node):
    create_tx = {
        "txid": "cc" * 32,
        "vin": [{"txid": "ab" * 32, "vout": 0}],
        "vout": [
            {"value": 0, "n": 0, "scriptPubKey": {"type": "create", "address": CONTRACT.upper()}},
        ],
    }
    block = parse_rpc(RpcBlock, node.add_block(3, [create_tx]))
    tx = decode_transaction(block.transactions[1], block, 1)

    assert tx.to_address is None
    assert tx.contract_address == CONTRACT
    assert tx.input == "0x"
    assert tx.from_address is None
    assert tx.timestamp == block.time


def test_receipts_set_gas_status_and_logs(node):
    raw_tx = node.transfer_tx(
        "dd" * 32,
        token=TOKEN,
        sender="aa" * 20,
        recipient="bb" * 20,
        value=1000,
        gas_used=40_000,
    )
    block = parse_rpc(RpcBlock, node.add_block(9, [raw_tx]))
    receipts = [parse_rpc(RpcReceipt, r) for r in node.receipts["dd" * 32]]
    # second receipt of the same tx: excepted, one more log
    receipts.append(
        parse_rpc(
            RpcReceipt,
            {
                "gasUsed": 2_000,
                "excepted": "Revert",
                "log": [{"address": TOKEN, "topics": ["11" * 32], "data": ""}],
            },
        )
    )

    tx = apply_receipts(decode_transaction(block.transactions[1], block, 1), receipts)
    assert tx.gas_used == "42000"
    assert tx.status == 0
    # call receipts carry the callee address; that is not a creation
    assert tx.contract_address is None

    logs = decode_event_logs(tx.hash, receipts, block)
    assert [log.log_index for log in logs] == [0, 1]
    assert logs[0].address == TOKEN
    assert logs[0].block_height == 9

    transfer = decode_token_transfer(logs[0], TransferDecoder())
    assert transfer is not None
    assert transfer.from_address == "0x" + "aa" * 20
    assert transfer.to_address == "0x" + "bb" * 20
    assert transfer.value == "1000"
    assert transfer.token_address == TOKEN
    assert decode_token_transfer(logs[1], TransferDecoder()) is None


def test_verbosity_one_txids_are_ignored():
    block = parse_rpc(
        RpcBlock,
        {"hash": "ab" * 32, "height": 1, "time": 1, "tx": ["ff" * 32]},
    )
    assert block.transactions == []
    assert decode_block_header(block).tx_count == 1


def test_log_address_is_stored_without_prefix(node):
    block = parse_rpc(RpcBlock, node.add_block(3))
    receipts = [
        parse_rpc(
            RpcReceipt,
            {"gasUsed": 21_000, "log": [{"address": "0x" + TOKEN.upper(), "topics": ["11" * 32], "data": "AB"}]},
        )
    ]

    logs = decode_event_logs("ee" * 32, receipts, block)

    assert logs[0].address == TOKEN
    assert logs[0].data == "ab"


def test_flags_reported_as_list(node):
    payload = node.add_block(4, pos=True)
    payload["flags"] = ["proof-of-stake", "stake-modifier"]

    block = parse_rpc(RpcBlock, payload)

    assert block.is_pos
    assert decode_block_header(block).is_pos == 1


def test_null_log_data_and_topics_degrade_to_empty(node):
    block = parse_rpc(RpcBlock, node.add_block(6))
    receipt = parse_rpc(
        RpcReceipt,
        {"gasUsed": 21_000, "log": [{"address": TOKEN, "topics": None, "data": None}]},
    )

    logs = decode_event_logs("ef" * 32, [receipt], block)

    assert len(logs) == 1
    assert logs[0].data == ""
    assert logs[0].topics == ()
