"""
Bot process entry point.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import discord
import uvicorn

from autodelete.bot import AutoDeleteClient
from autodelete.config import Settings, get_settings
from autodelete.deletions.journal import SqlDeletionJournal
from autodelete.deletions.scheduler import DeletionScheduler, DeletionSchedulerConfig
from autodelete.gateway.discord_adapter import DiscordAdminAuthorizer, DiscordChannelGateway
from autodelete.gateway.interface import AdminAuthorizer, ChannelGateway
from autodelete.ops.api import create_app
from autodelete.policies.commands import PolicyCommandProcessor
from autodelete.policies.repository import SqlPolicyStore
from autodelete.router import MessageRouter
from autodelete.shared.database import DatabaseManager
from autodelete.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


class StartupError(RuntimeError):
    """A connection required before serving events could not be established."""


@dataclass
class Core:
    """The wired core components."""

    store: SqlPolicyStore
    scheduler: DeletionScheduler
    processor: PolicyCommandProcessor
    router: MessageRouter


def build_core(
    settings: Settings,
    db: DatabaseManager,
    gateway: ChannelGateway,
    authorizer: AdminAuthorizer,
    clock: Callable[[], datetime] | None = None,
) -> Core:
    """Wire store, scheduler, command processor and router from settings."""
    store = SqlPolicyStore(db, default_delay_minutes=settings.default_delay_minutes)

    scheduler_kwargs = {}
    if clock is not None:
        scheduler_kwargs["clock"] = clock
    scheduler = DeletionScheduler(
        store=store,
        gateway=gateway,
        config=DeletionSchedulerConfig(
            max_concurrent_deletes=settings.max_concurrent_deletes,
            max_idle_seconds=settings.dispatcher_max_idle_seconds,
        ),
        journal=SqlDeletionJournal(db) if settings.deletion_journal_enabled else None,
        **scheduler_kwargs,
    )

    on_disable = None
    if settings.cancel_pending_on_disable:

        async def on_disable(channel_id: str) -> None:
            scheduler.cancel_channel(channel_id)

    processor = PolicyCommandProcessor(
        store=store,
        authorizer=authorizer,
        gateway=gateway,
        prefix=settings.command_prefix,
        on_disable=on_disable,
    )
    return Core(
        store=store,
        scheduler=scheduler,
        processor=processor,
        router=MessageRouter(processor=processor, scheduler=scheduler),
    )


async def connect_database(settings: Settings) -> DatabaseManager:
    """Open the policy database and create missing tables.

    Raises:
        StartupError: The database is unreachable.
    """
    db = DatabaseManager(settings.resolved_database_url, echo=settings.debug)
    try:
        await db.ping()
        await db.create_all()
    except Exception as exc:
        await db.close()
        raise StartupError(f"Failed to connect to database: {exc}") from exc
    return db


async def run(settings: Settings) -> None:
    """Connect everything and serve events until the client closes or a stop signal arrives."""
    if not settings.discord_bot_token:
        raise StartupError("DISCORD_BOT_TOKEN environment variable not set")

    db = await connect_database(settings)
    client = AutoDeleteClient()
    core = build_core(
        settings,
        db,
        gateway=DiscordChannelGateway(client),
        authorizer=DiscordAdminAuthorizer(client),
    )
    client.attach_router(core.router)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    ops_server: uvicorn.Server | None = None
    ops_task: asyncio.Task[None] | None = None
    if settings.ops_api_enabled:
        ops_app = create_app(db, core.store, core.scheduler, debug=settings.debug)
        ops_server = uvicorn.Server(
            uvicorn.Config(
                ops_app,
                host=settings.ops_api_host,
                port=settings.ops_api_port,
                log_config=None,
            )
        )
        ops_task = asyncio.create_task(ops_server.serve())

    await core.scheduler.start()
    client_task = asyncio.create_task(client.start(settings.discord_bot_token))
    stop_task = asyncio.create_task(stop.wait())
    logger.info("Bot starting", extra={"env": settings.app_env})

    try:
        await asyncio.wait({client_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if client_task.done() and not client_task.cancelled():
            exc = client_task.exception()
            if isinstance(exc, discord.LoginFailure):
                raise StartupError(f"Discord login failed: {exc}") from exc
            if exc is not None:
                raise exc
    finally:
        logger.info("Shutting down")
        stop_task.cancel()
        if not client.is_closed():
            await client.close()
        if not client_task.done():
            client_task.cancel()
            try:
                await client_task
            except asyncio.CancelledError:
                pass
        await core.scheduler.stop()
        if ops_server is not None and ops_task is not None:
            ops_server.should_exit = True
            await ops_task
        await db.close()
        logger.info("Shutdown complete")


def main() -> None:
    """Console script entry point."""
    settings = get_settings()
    setup_logging(settings)
    try:
        asyncio.run(run(settings))
    except StartupError as exc:
        logger.critical(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
