from __future__ import annotations

from collections.abc import Awaitable, Callable

from .init_db_task import init_db_task
from .reindex_blocks_task import reindex_blocks_task
from .status_task import status_task
from .sync_chain_task import sync_chain_task
from .token_balances_task import token_balances_task

TaskFn = Callable[..., Awaitable[object]]

TASKS: dict[str, TaskFn] = {
    "sync_chain_task": sync_chain_task,
    "reindex_blocks_task": reindex_blocks_task,
    "token_balances_task": token_balances_task,
    "status_task": status_task,
    "init_db_task": init_db_task,
}
