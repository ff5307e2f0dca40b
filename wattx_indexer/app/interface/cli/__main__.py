import asyncio
import inspect
import logging
from typing import Optional

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

from wattx_indexer.app.application.services.block_bounds import parse_block_selector
from wattx_indexer.app.config import settings
from wattx_indexer.app.interface.tasks import TASKS
from wattx_indexer.app.interface.tasks.init_db_task import init_db_task
from wattx_indexer.app.interface.tasks.reindex_blocks_task import reindex_blocks_task
from wattx_indexer.app.interface.tasks.status_task import status_task
from wattx_indexer.app.interface.tasks.sync_chain_task import sync_chain_task
from wattx_indexer.app.interface.tasks.token_balances_task import token_balances_task


load_dotenv()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
indexer_app = typer.Typer(help="cli for indexing WATTx chain data.")
db_app = typer.Typer(help="database maintenance.")
app.add_typer(indexer_app, name="indexer")
app.add_typer(db_app, name="db")


@indexer_app.command("run")
def run() -> None:
    """Interactive task picker."""
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()

    task = TASKS[task_name]
    params = inspect.signature(task).parameters
    kwargs: dict[str, object] = {}

    if "from_block" in params:
        kwargs["from_block"] = parse_block_selector(
            inquirer.text(message="From block (inclusive):", default="earliest").execute()
        )
    if "to_block" in params:
        kwargs["to_block"] = parse_block_selector(
            inquirer.text(message="To block (inclusive):", default="latest").execute()
        )
    if "token" in params:
        token = inquirer.text(
            message="Token address (optional, empty = all tokens):",
            default="",
        ).execute()
        kwargs["token"] = token.strip() or None
    if "once" in params:
        kwargs["once"] = inquirer.confirm(message="Index a single batch only?", default=False).execute()

    asyncio.run(task(**kwargs))  # type: ignore


@indexer_app.command("sync")
def sync(
    batch_size: Optional[int] = typer.Option(None, help="Blocks per batch (default SYNC_BATCH_SIZE)."),
    start_height: Optional[int] = typer.Option(None, help="First height on an empty index (default START_HEIGHT)."),
    once: bool = typer.Option(False, "--once", help="Index one batch and exit."),
) -> None:
    """Follow the chain tip."""
    asyncio.run(sync_chain_task(batch_size=batch_size, start_height=start_height, once=once))


@indexer_app.command("reindex")
def reindex(
    from_block: str = typer.Argument(..., help='Height or "earliest".'),
    to_block: str = typer.Argument("latest", help='Height or "latest".'),
) -> None:
    """Re-index a block range (cursor unchanged)."""
    asyncio.run(
        reindex_blocks_task(
            from_block=parse_block_selector(from_block),
            to_block=parse_block_selector(to_block),
        )
    )


@indexer_app.command("balances")
def balances(
    token: Optional[str] = typer.Option(None, help="Token contract address; all tokens when omitted."),
) -> None:
    """Re-derive holder balances from stored transfers."""
    asyncio.run(token_balances_task(token=token))


@indexer_app.command("status")
def status() -> None:
    """Show index progress against the node tip."""
    result = asyncio.run(status_task())
    for key, value in result.items():
        typer.echo(f"{key:>20}: {value}")


@db_app.command("init")
def init(
    database_url: Optional[str] = typer.Option(None, help="Override DATABASE_URL."),
) -> None:
    """Create missing tables."""
    asyncio.run(init_db_task(database_url=database_url))


if __name__ == "__main__":
    LOGO = r"""

    __        ___  _____ _____
    \ \      / / \|_   _|_   _|_  __
     \ \ /\ / / _ \ | |   | | \ \/ /
      \ V  V / ___ \| |   | |  >  <
       \_/\_/_/   \_\_|   |_| /_/\_\

      --- Chain Indexer CLI ---
    """
    typer.echo(LOGO)
    app()
