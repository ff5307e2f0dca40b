from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from wattx_indexer.app.domain.ports.out import EvmEventDecoder
from wattx_indexer.app.infrastructure.decoders.abi_words import strip_0x

logger = logging.getLogger(__name__)

# indexed params of these kinds are stored as keccak hashes, not values
_HASHED_WHEN_INDEXED = ("string", "bytes")


class AbiEventDecoder(EvmEventDecoder):
    """
    ABI-based decoder for every event of one verified contract.

    It:
    - parses the ABI (raw list, or an artifact dict with an "abi" list),
    - computes topic0 = keccak("EventName(type1,type2,...)") per event,
    - decodes indexed args from topics and non-indexed args from `data`
      with eth_abi,
    - renders values JSON-friendly (ints as decimal strings, bytes as hex).

    Output: {"name": "<EventName>", "args": {...}} or None when the log
    does not belong to a known event or does not decode.
    """

    def __init__(self, *, abi: list[dict[str, Any]]) -> None:
        self._events: dict[str, dict[str, Any]] = {}
        for event_abi in abi:
            if event_abi.get("type") != "event" or event_abi.get("anonymous"):
                continue
            try:
                signature = self._event_signature(event_abi)
            except ValueError:
                logger.debug("Skipping malformed event ABI entry %r", event_abi.get("name"))
                continue
            self._events[keccak(text=signature).hex()] = event_abi

    @classmethod
    def from_json(cls, abi_json: str) -> "AbiEventDecoder":
        data = json.loads(abi_json)

        # Common formats:
        # - [ ... ] (ABI list)
        # - { "abi": [ ... ] } (artifact)
        if isinstance(data, list):
            abi = data
        elif isinstance(data, dict) and isinstance(data.get("abi"), list):
            abi = data["abi"]
        else:
            raise ValueError("Unsupported ABI JSON format. Expected list or dict with 'abi' list.")

        return cls(abi=[x for x in abi if isinstance(x, dict)])

    @property
    def known_topics(self) -> set[str]:
        return set(self._events)

    def decode(
        self,
        *,
        topics: Sequence[str],
        data: str,
    ) -> dict[str, Any] | None:
        if not topics:
            return None

        event_abi = self._events.get(strip_0x(topics[0]).lower())
        if event_abi is None:
            return None

        inputs: list[dict[str, Any]] = list(event_abi.get("inputs", []))
        indexed = [i for i in inputs if i.get("indexed") is True]
        non_indexed = [i for i in inputs if not i.get("indexed")]

        if len(topics) - 1 != len(indexed):
            return None

        try:
            args: dict[str, Any] = {}

            for inp, topic in zip(indexed, topics[1:], strict=True):
                typ = inp["type"]
                raw = bytes.fromhex(strip_0x(topic))
                if typ in _HASHED_WHEN_INDEXED or typ.endswith("]") or typ.startswith("tuple"):
                    args[inp["name"]] = "0x" + raw.hex()
                else:
                    (val,) = abi_decode([typ], raw)
                    args[inp["name"]] = self._normalize_abi_value(typ, val)

            if non_indexed:
                types = [i["type"] for i in non_indexed]
                values = abi_decode(types, bytes.fromhex(strip_0x(data)))
                for inp, val in zip(non_indexed, values, strict=True):
                    args[inp["name"]] = self._normalize_abi_value(inp["type"], val)
        except (DecodingError, ValueError, TypeError, KeyError) as exc:
            logger.debug("Could not decode %s: %s", event_abi.get("name"), exc)
            return None

        return {"name": event_abi["name"], "args": args}

    # ---------------------------------------------------------------------
    # ABI helpers
    # ---------------------------------------------------------------------

    def _event_signature(self, event_abi: Mapping[str, Any]) -> str:
        name = event_abi.get("name")
        inputs = event_abi.get("inputs", [])
        if not isinstance(name, str) or not isinstance(inputs, list):
            raise ValueError("Invalid event ABI: missing name/inputs")
        types = []
        for inp in inputs:
            if not isinstance(inp, dict) or "type" not in inp:
                raise ValueError("Invalid event ABI inputs")
            types.append(inp["type"])
        return f"{name}({','.join(types)})"

    def _normalize_abi_value(self, typ: str, val: Any) -> Any:
        if isinstance(val, (list, tuple)):
            inner = typ[: typ.rfind("[")] if typ.endswith("]") else typ
            return [self._normalize_abi_value(inner, v) for v in val]

        if typ == "address" and isinstance(val, str):
            return val.lower()

        if isinstance(val, bool):
            return val

        if isinstance(val, int):
            # uint256 does not fit a JSON number safely
            return str(val)

        if isinstance(val, (bytes, bytearray, memoryview)):
            return "0x" + bytes(val).hex()

        return val
