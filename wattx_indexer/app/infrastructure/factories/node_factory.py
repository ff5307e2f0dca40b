from __future__ import annotations

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3

from wattx_indexer.app.config import settings
from wattx_indexer.app.infrastructure.fetchers.node_client import Web3ChainNode


def make_async_web3(
    *,
    rpc_url: str | None = None,
    rpc_user: str | None = None,
    rpc_password: str | None = None,
    timeout: float | None = None,
) -> AsyncWeb3:
    """
    AsyncWeb3 over the node's HTTP RPC port.

    The daemon requires HTTP basic auth (rpcuser / rpcpassword); both are
    taken from settings unless given explicitly.
    """
    user = rpc_user if rpc_user is not None else settings.rpc_user
    if rpc_password is None and settings.rpc_password is not None:
        rpc_password = settings.rpc_password.get_secret_value()

    request_kwargs: dict = {
        "timeout": aiohttp.ClientTimeout(total=timeout or settings.rpc_timeout),
    }
    if user:
        request_kwargs["auth"] = aiohttp.BasicAuth(user, rpc_password or "")

    return AsyncWeb3(
        AsyncHTTPProvider(
            rpc_url or settings.rpc_url,
            request_kwargs=request_kwargs,
        )
    )


def chain_node_factory(**kwargs) -> Web3ChainNode:
    return Web3ChainNode(w3=make_async_web3(**kwargs))
