from __future__ import annotations

import asyncio
import logging
from typing import Any, Final

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception
from web3.types import RPCEndpoint

from wattx_indexer.app.domain.errors import (
    BlockNotFoundError,
    IndexerError,
    NodeRpcError,
    NodeUnavailableError,
)
from wattx_indexer.app.domain.models import CallResult
from wattx_indexer.app.domain.ports.out import ChainNode
from wattx_indexer.app.domain.rpc_types import (
    RpcBlock,
    RpcCallResult,
    RpcReceipt,
    parse_rpc,
)
from wattx_indexer.app.infrastructure.decoders.abi_words import strip_0x

logger = logging.getLogger(__name__)

# RPC_INVALID_ADDRESS_OR_KEY / RPC_INVALID_PARAMETER (height out of range)
_NOT_FOUND_CODES: Final[frozenset[int]] = frozenset({-5, -8})

_BLOCK_VERBOSITY: Final[int] = 2


class Web3ChainNode(ChainNode):
    """
    JSON-RPC client for the WATTx daemon, using web3's async HTTP provider
    as transport.

    The daemon speaks bitcoind-style RPC (getblockcount, getblock, ...)
    plus the EVM overlay calls (gettransactionreceipt, callcontract, ...),
    so requests go straight through provider.make_request instead of the
    eth_* module.

    Failure mapping:
      - transport errors            -> NodeUnavailableError
      - HTTP error status           -> the JSON-RPC error in the body, else
                                       NodeUnavailableError
      - error object, codes -5/-8   -> BlockNotFoundError
      - any other error object      -> NodeRpcError
    Methods returning CallResult never raise.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3
        # set by detect_wallet() on multi-wallet daemons
        self.wallet_name: str | None = None

    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        try:
            response = await self._w3.provider.make_request(RPCEndpoint(method), params or [])
        except aiohttp.ClientResponseError as exc:
            # the daemon answers RPC errors with HTTP 500 and the error object as body
            response = await self._read_error_response(method, params or [], exc)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, Web3Exception) as exc:
            raise NodeUnavailableError(f"{method}: {type(exc).__name__}: {exc}") from exc

        error = response.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            if code in _NOT_FOUND_CODES:
                raise BlockNotFoundError(code, message, method=method)
            raise NodeRpcError(code, message, method=method)

        return response.get("result")

    async def _read_error_response(
        self,
        method: str,
        params: list[Any],
        exc: aiohttp.ClientResponseError,
    ) -> dict[str, Any]:
        """
        Re-issue a request that failed with an HTTP error status and return the
        JSON-RPC envelope from its body. Only read-only methods go through here.
        """
        provider = self._w3.provider
        payload = {"jsonrpc": "2.0", "id": 0, "method": method, "params": params}
        unavailable = NodeUnavailableError(f"{method}: HTTP {exc.status}: {exc.message}")

        try:
            async with aiohttp.ClientSession(raise_for_status=False) as session:
                async with session.post(
                    provider.endpoint_uri,
                    json=payload,
                    **dict(provider.get_request_kwargs()),
                ) as resp:
                    body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as retry_exc:
            raise unavailable from retry_exc

        if not isinstance(body, dict) or not body.get("error"):
            raise unavailable from exc
        return body

    async def _try_call(self, method: str, params: list[Any]) -> CallResult[Any]:
        try:
            return CallResult.success(await self._call(method, params))
        except IndexerError as exc:
            logger.debug("%s%r failed: %s", method, params, exc)
            return CallResult.failure(exc)

    # ---------------------------------------------------------------------
    # Chain
    # ---------------------------------------------------------------------

    async def get_chain_height(self) -> int:
        return int(await self._call("getblockcount"))

    async def get_block(self, height: int) -> RpcBlock | None:
        try:
            block_hash = await self._call("getblockhash", [height])
            if not block_hash:
                return None
            raw = await self._call("getblock", [block_hash, _BLOCK_VERBOSITY])
        except BlockNotFoundError:
            return None

        if raw is None:
            return None
        return parse_rpc(RpcBlock, raw)

    async def get_transaction_receipts(self, txid: str) -> list[RpcReceipt]:
        raw = await self._call("gettransactionreceipt", [txid])
        if not raw:
            return []
        if not isinstance(raw, list):
            raw = [raw]
        return [parse_rpc(RpcReceipt, r) for r in raw]

    # ---------------------------------------------------------------------
    # Contracts
    # ---------------------------------------------------------------------

    async def get_contract_code(self, address: str) -> CallResult[str]:
        result = await self._try_call("getcontractcode", [strip_0x(address)])
        return result.map(lambda code: code or "")

    async def call_contract(self, address: str, data: str) -> CallResult[str]:
        result = await self._try_call("callcontract", [strip_0x(address), strip_0x(data)])
        if not result.ok:
            return CallResult.failure(result.error or "callcontract failed")

        try:
            parsed = parse_rpc(RpcCallResult, result.value)
        except IndexerError as exc:
            return CallResult.failure(exc)

        excepted = parsed.execution_result.excepted
        if excepted not in (None, "", "None"):
            return CallResult.failure(f"execution excepted: {excepted}")
        return CallResult.success(parsed.execution_result.output)

    # ---------------------------------------------------------------------
    # Addresses / wallet
    # ---------------------------------------------------------------------

    async def to_hex_address(self, address: str) -> CallResult[str]:
        return await self._try_call("gethexaddress", [address])

    async def from_hex_address(self, hex_address: str) -> CallResult[str]:
        return await self._try_call("fromhexaddress", [strip_0x(hex_address)])

    async def detect_wallet(self) -> str | None:
        """Pick the first loaded wallet on multi-wallet daemons; single-wallet nodes keep None."""
        wallets = await self._try_call("listwallets", [])
        names = wallets.unwrap_or([])
        if names:
            self.wallet_name = names[0]
            logger.info("Multi-wallet node detected, using wallet %s", self.wallet_name)
        return self.wallet_name
