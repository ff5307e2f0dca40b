from __future__ import annotations

from wattx_indexer.app.application.services.token_balances import (
    refresh_all_token_balances,
    refresh_token_balances,
)
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.factories.chain_sync_factory import index_store_factory


async def token_balances_task(
    *,
    token: str | None = None,
    backend: str = "sqlalchemy",
) -> None:
    """
    Re-derives token_balances from token_transfers.

    - token given -> that token only,
    - otherwise   -> every known token.
    """
    engine = create_app_async_engine()
    try:
        await init_schema(engine)
        store = index_store_factory(backend, engine)
        if token:
            await refresh_token_balances(store=store, token_address=token.lower().removeprefix("0x"))
        else:
            await refresh_all_token_balances(store=store)
    finally:
        await engine.dispose()
