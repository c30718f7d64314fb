"""HoloCard CLI — run the server and manage the local auth tables.

Usage:
    holocard serve                      # Run the web app (uvicorn)
    holocard init-db                    # Create missing tables
    holocard create-user alice          # Add a local account (prompts for password)
    holocard purge-sessions             # Delete expired session rows
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from datetime import timedelta
from typing import Optional

import click

from holocard import __version__
from holocard.config import Settings
from holocard.db.engine import build_engine, build_session_factory, init_models
from holocard.errors import AppError
from holocard.services.session_service import SessionService
from holocard.services.user_service import UserService


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. Click's CliRunner inside an async
    test) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


@click.group()
@click.version_option(version=__version__, prog_name="holocard")
@click.pass_context
def main(ctx: click.Context):
    """HoloCard — auth, sessions and image gallery service."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", Settings())


@main.command()
@click.option("--host", default=None, help="Bind address (default: HOLOCARD_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: HOLOCARD_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool):
    """Run the web app."""
    import uvicorn

    settings: Settings = ctx.obj["settings"]
    uvicorn.run(
        "holocard.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context):
    """Create the users, sessions and images tables if missing."""
    _run(_init_db_impl(ctx.obj["settings"]))
    click.secho("Tables ready.", fg="green")


async def _init_db_impl(settings: Settings) -> None:
    engine = build_engine(settings)
    try:
        await init_models(engine)
    finally:
        await engine.dispose()


@main.command("create-user")
@click.argument("username")
@click.password_option()
@click.pass_context
def create_user(ctx: click.Context, username: str, password: str):
    """Add a local username/password account."""
    try:
        user_id = _run(_create_user_impl(ctx.obj["settings"], username, password))
    except AppError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Created user {username} (id={user_id})", fg="green")


async def _create_user_impl(settings: Settings, username: str, password: str) -> int:
    engine = build_engine(settings)
    try:
        await init_models(engine)
        async with build_session_factory(engine)() as db:
            user = await UserService(db, bcrypt_rounds=settings.bcrypt_rounds).create_user(
                username, password
            )
            return user.id
    finally:
        await engine.dispose()


@main.command("purge-sessions")
@click.pass_context
def purge_sessions(ctx: click.Context):
    """Delete expired session rows (nothing does this automatically)."""
    removed = _run(_purge_sessions_impl(ctx.obj["settings"]))
    click.echo(f"Removed {removed} expired session(s).")


async def _purge_sessions_impl(settings: Settings) -> int:
    engine = build_engine(settings)
    try:
        await init_models(engine)
        async with build_session_factory(engine)() as db:
            service = SessionService(db, ttl=timedelta(days=settings.session_ttl_days))
            return await service.purge_expired()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    main()
