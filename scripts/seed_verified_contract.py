import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from wattx_indexer.app.domain.models import VerifiedContractRecord
from wattx_indexer.app.infrastructure.adapters.index_store import SqlAlchemyIndexStore
from wattx_indexer.app.infrastructure.db.engine import create_app_async_engine, init_schema
from wattx_indexer.app.infrastructure.decoders.verified_abi_decoder import AbiEventDecoder


def load_abi(path: Path) -> list[dict]:
    """Accepts a bare ABI list or a compiler artifact with an "abi" key."""
    with path.open() as f:
        payload = json.load(f)
    abi = payload["abi"] if isinstance(payload, dict) else payload
    if not isinstance(abi, list):
        raise typer.BadParameter(f"{path} does not contain an ABI list")
    return abi


async def seed_verified_contract(
    *,
    address: str,
    abi: list[dict],
    name: str | None,
    compiler_version: str | None,
) -> None:
    # fail early on ABIs the log decoder cannot use
    decoder = AbiEventDecoder(abi=abi)

    engine = create_app_async_engine()
    try:
        await init_schema(engine)
        store = SqlAlchemyIndexStore(engine=engine)
        await store.upsert_verified_contract(
            VerifiedContractRecord(
                address=address.lower().removeprefix("0x"),
                name=name,
                source_code=None,
                abi=json.dumps(abi),
                compiler_version=compiler_version,
                optimization=False,
                constructor_args=None,
                verified_at=datetime.now(timezone.utc),
            )
        )
    finally:
        await engine.dispose()

    typer.echo(f"{address}: {len(decoder.known_topics)} decodable events")


def main(
    address: str = typer.Argument(..., help="Contract address (hex)."),
    abi_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="ABI or artifact JSON."),
    name: Optional[str] = typer.Option(None, help="Contract name."),
    compiler_version: Optional[str] = typer.Option(None, help="solc version used."),
) -> None:
    load_dotenv()
    asyncio.run(
        seed_verified_contract(
            address=address,
            abi=load_abi(abi_path),
            name=name,
            compiler_version=compiler_version,
        )
    )


if __name__ == "__main__":
    typer.run(main)
