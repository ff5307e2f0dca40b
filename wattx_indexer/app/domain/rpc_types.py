"""
Typed shapes of the node's JSON-RPC results.

Only the fields the indexer reads are declared; everything else the node
reports is ignored. Fields the node may omit (coinbase inputs, contract
outputs without an address, transactions without receipts) are optional.
"""
from __future__ import annotations

from typing import Any, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from wattx_indexer.app.domain.errors import DecodeError

POS_FLAG = "proof-of-stake"

M = TypeVar("M", bound=BaseModel)


class _RpcModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RpcScriptPubKey(_RpcModel):
    type: str | None = None
    hex: str | None = None
    asm: str | None = None
    address: str | None = None
    addresses: list[str] | None = None

    @property
    def primary_address(self) -> str | None:
        if self.address:
            return self.address
        if self.addresses:
            return self.addresses[0]
        return None

    @property
    def is_create(self) -> bool:
        # newer daemons also report create_sender / call_sender
        return bool(self.type) and self.type.startswith("create")

    @property
    def is_call(self) -> bool:
        return bool(self.type) and self.type.startswith("call")


class RpcVout(_RpcModel):
    value: Any = 0
    n: int | None = None
    script_pub_key: RpcScriptPubKey = Field(
        default_factory=RpcScriptPubKey,
        validation_alias=AliasChoices("scriptPubKey", "script_pub_key"),
    )


class RpcPrevout(_RpcModel):
    value: Any = 0


class RpcVin(_RpcModel):
    txid: str | None = None
    vout: int | None = None
    coinbase: str | None = None
    prevout: RpcPrevout | None = None


class RpcTransaction(_RpcModel):
    txid: str
    vin: list[RpcVin] = Field(default_factory=list)
    vout: list[RpcVout] = Field(default_factory=list)

    @property
    def is_coinbase(self) -> bool:
        return bool(self.vin) and self.vin[0].coinbase is not None


class RpcBlock(_RpcModel):
    hash: str
    height: int
    time: int
    previous_hash: str | None = Field(
        None,
        validation_alias=AliasChoices("previousblockhash", "previous_hash"),
    )
    size: int = 0
    nonce: Any = 0
    difficulty: Any = 0
    miner: str | None = None
    flags: str | None = None
    tx: list[RpcTransaction | str] = Field(default_factory=list)

    @field_validator("flags", mode="before")
    @classmethod
    def _join_flags(cls, value: Any) -> Any:
        # some daemons report flags as a list of strings
        if isinstance(value, (list, tuple)):
            return " ".join(str(v) for v in value)
        return value

    @property
    def is_pos(self) -> bool:
        return bool(self.flags) and POS_FLAG in self.flags

    @property
    def transactions(self) -> list[RpcTransaction]:
        # verbosity 1 would give bare txids; only objects are indexable
        return [t for t in self.tx if isinstance(t, RpcTransaction)]


class RpcLog(_RpcModel):
    address: str | None = None
    topics: list[str] = Field(default_factory=list)
    data: str = ""

    @field_validator("data", mode="before")
    @classmethod
    def _empty_data(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("topics", mode="before")
    @classmethod
    def _no_topics(cls, value: Any) -> Any:
        return [] if value is None else value


class RpcReceipt(_RpcModel):
    contract_address: str | None = Field(
        None,
        validation_alias=AliasChoices("contractAddress", "contract_address"),
    )
    gas_used: int | None = Field(
        None,
        validation_alias=AliasChoices("gasUsed", "gas_used"),
    )
    excepted: str | None = None
    logs: list[RpcLog] = Field(
        default_factory=list,
        validation_alias=AliasChoices("log", "logs"),
    )

    @property
    def succeeded(self) -> bool:
        return self.excepted in (None, "", "None")


class RpcExecutionResult(_RpcModel):
    output: str = ""
    excepted: str | None = None


class RpcCallResult(_RpcModel):
    address: str | None = None
    execution_result: RpcExecutionResult = Field(
        default_factory=RpcExecutionResult,
        validation_alias=AliasChoices("executionResult", "execution_result"),
    )


def parse_rpc(model: type[M], payload: Any) -> M:
    """Validate a raw node payload into `model`; shape mismatches become DecodeError."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected {model.__name__} payload: {exc}") from exc
