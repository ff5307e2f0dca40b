from wattx_indexer.app.infrastructure.decoders.abi_words import (
    decode_abi_string,
    decode_small_int,
    decode_uint256,
    normalize_address,
    strip_0x,
    topic_to_address,
)


def _word(n: int) -> str:
    return f"{n:064x}"


def test_strip_0x():
    assert strip_0x("0xabc") == "abc"
    assert strip_0x("0Xabc") == "abc"
    assert strip_0x("abc") == "abc"
    assert strip_0x(None) == ""


def test_decode_uint256():
    assert decode_uint256("0x" + _word(1000)) == "1000"
    assert decode_uint256(_word(2**256 - 1)) == str(2**256 - 1)
    assert decode_uint256("") == "0"
    assert decode_uint256(None) == "0"
    assert decode_uint256("zz") == "0"


def test_decode_small_int():
    assert decode_small_int(_word(18), default=-1) == 18
    assert decode_small_int("", default=-1) == -1
    assert decode_small_int("nothex", default=7) == 7


def test_decode_abi_string():
    payload = "Wrapped WATTx".encode().hex()
    encoded = _word(32) + _word(13) + payload.ljust(64, "0")
    assert decode_abi_string(encoded) == "Wrapped WATTx"
    assert decode_abi_string("0x" + encoded) == "Wrapped WATTx"


def test_decode_abi_string_degrades_to_empty():
    # shorter than offset + length words
    assert decode_abi_string(_word(32)) == ""
    # length claims more bytes than present
    assert decode_abi_string(_word(32) + _word(50) + "41" * 4) == ""
    # invalid utf-8
    assert decode_abi_string(_word(32) + _word(1) + "ff".ljust(64, "0")) == ""
    assert decode_abi_string(None) == ""


def test_topic_to_address():
    topic = "0x" + "0" * 24 + "AA" * 20
    assert topic_to_address(topic) == "0x" + "aa" * 20
    assert topic_to_address("0x1234") == ""


def test_normalize_address_keeps_base58_case():
    assert normalize_address("0x" + "AB" * 20) == "0x" + "ab" * 20
    assert normalize_address("AB" * 20) == "ab" * 20
    assert normalize_address("WZ8xYk3sQ9pLmN2") == "WZ8xYk3sQ9pLmN2"
    assert normalize_address(None) is None
