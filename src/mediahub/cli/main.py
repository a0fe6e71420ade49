"""MediaHub CLI — run the API server and prepare a development database.

Usage:
    mediahub serve                       # uvicorn on MEDIAHUB_HOST:MEDIAHUB_PORT
    mediahub serve --port 9000 --reload  # dev server with autoreload
    mediahub init-db                     # create all tables (dev only; use alembic in prod)
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from mediahub.config import Settings


async def _create_all(settings: Settings) -> None:
    from mediahub.db.engine import create_engine
    from mediahub.db.models import Base

    engine = create_engine(settings)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


@click.group()
def cli():
    """MediaHub — media-sharing backend."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: MEDIAHUB_HOST).")
@click.option("--port", default=None, type=int, help="Port (default: MEDIAHUB_PORT).")
@click.option("--reload", is_flag=True, help="Restart on code changes.")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "mediahub.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create every table for the configured database."""
    settings = Settings()
    asyncio.run(_create_all(settings))
    click.echo(f"Tables created ({settings.database_url.split('://', 1)[0]})")


if __name__ == "__main__":
    cli()
