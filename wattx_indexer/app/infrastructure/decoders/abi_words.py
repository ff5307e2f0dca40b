"""
Word-level helpers for ABI-encoded hex returned by the node.

The node returns hex without a 0x prefix; both forms are accepted. None of
these helpers raise on malformed input: they degrade to a default value.
"""
from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_WORD_HEX = 64
_ADDRESS_HEX = 40
_HEX_ADDRESS = re.compile(r"(0[xX])?[0-9a-fA-F]{40}")


def strip_0x(value: str | None) -> str:
    if not value:
        return ""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def decode_uint256(value: str | None) -> str:
    """Unsigned big-endian hex -> base-10 string; empty/absent/malformed -> "0"."""
    hex_str = strip_0x(value)
    if not hex_str:
        return "0"
    try:
        return str(int(hex_str, 16))
    except ValueError:
        logger.debug("Malformed uint256 hex %r", value)
        return "0"


def decode_small_int(value: str | None, *, default: int) -> int:
    hex_str = strip_0x(value)
    if not hex_str:
        return default
    try:
        return int(hex_str, 16)
    except ValueError:
        return default


def decode_abi_string(value: str | None) -> str:
    """
    Decode an ABI dynamic string: offset word, length word, then the payload.

    Anything short or malformed yields "" instead of raising.
    """
    hex_str = strip_0x(value)
    if len(hex_str) < 2 * _WORD_HEX:
        return ""
    try:
        offset = int(hex_str[:_WORD_HEX], 16) * 2
        length = int(hex_str[offset : offset + _WORD_HEX], 16)
        start = offset + _WORD_HEX
        payload = hex_str[start : start + length * 2]
        if len(payload) != length * 2:
            return ""
        return bytes.fromhex(payload).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        logger.debug("Malformed ABI string %r", value)
        return ""


def topic_to_address(topic: str | None) -> str:
    """Low 20 bytes of a 32-byte padded topic, as 0x-prefixed lower-case hex."""
    hex_str = strip_0x(topic)
    if len(hex_str) < _ADDRESS_HEX:
        return ""
    return "0x" + hex_str[-_ADDRESS_HEX:].lower()


def normalize_address(value: str | None) -> str | None:
    """
    Lower-case hex addresses (with or without 0x); base58 addresses are
    case-sensitive and returned unchanged.
    """
    if not value:
        return None
    if _HEX_ADDRESS.fullmatch(value):
        return value.lower()
    return value


def contract_key(value: str | None) -> str | None:
    """Contract and token addresses as the node reports them: lower-case hex, no 0x."""
    if not value:
        return None
    return value.lower().removeprefix("0x")
