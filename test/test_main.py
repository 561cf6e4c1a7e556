"""
Tests for application wiring and startup.
"""

from pathlib import Path

import pytest

from autodelete.config import Settings
from autodelete.deletions.journal import SqlDeletionJournal
from autodelete.gateway.mock_adapter import InMemoryChannelGateway, StaticAdminAuthorizer
from autodelete.main import StartupError, build_core, connect_database, run
from autodelete.policies.commands import CommandOutcome
from autodelete.router import Route
from autodelete.shared.database import DatabaseManager

from conftest import ADMIN_ID, CHANNEL_ID, FakeClock, make_event


class TestBuildCore:
    @pytest.mark.asyncio
    async def test_end_to_end_with_defaults(
        self,
        test_settings: Settings,
        db_manager: DatabaseManager,
        gateway: InMemoryChannelGateway,
        authorizer: StaticAdminAuthorizer,
        clock: FakeClock,
    ) -> None:
        core = build_core(test_settings, db_manager, gateway, authorizer, clock=clock)

        result = await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete enable 5"))
        assert result.command is not None
        assert result.command.outcome == CommandOutcome.ENABLED

        scheduled = await core.router.dispatch(make_event(message_id="77"))
        assert scheduled.route == Route.SCHEDULER
        assert scheduled.scheduled is not None

        clock.advance(minutes=5)
        core.scheduler.dispatch_due()
        await core.scheduler.wait_idle()
        assert gateway.deleted == [(CHANNEL_ID, "77")]

    @pytest.mark.asyncio
    async def test_disable_keeps_pending_by_default(
        self,
        test_settings: Settings,
        db_manager: DatabaseManager,
        gateway: InMemoryChannelGateway,
        authorizer: StaticAdminAuthorizer,
        clock: FakeClock,
    ) -> None:
        core = build_core(test_settings, db_manager, gateway, authorizer, clock=clock)
        await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete enable"))
        await core.router.dispatch(make_event(message_id="10"))

        await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete disable"))

        assert core.scheduler.pending_count == 1

    @pytest.mark.asyncio
    async def test_disable_cancels_pending_when_configured(
        self,
        test_settings: Settings,
        db_manager: DatabaseManager,
        gateway: InMemoryChannelGateway,
        authorizer: StaticAdminAuthorizer,
        clock: FakeClock,
    ) -> None:
        settings = test_settings.model_copy(update={"cancel_pending_on_disable": True})
        core = build_core(settings, db_manager, gateway, authorizer, clock=clock)
        await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete enable"))
        await core.router.dispatch(make_event(message_id="10"))

        await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete disable"))

        assert core.scheduler.pending_count == 0
        assert core.scheduler.stats.cancelled == 1

    @pytest.mark.asyncio
    async def test_journal_when_enabled(
        self,
        test_settings: Settings,
        db_manager: DatabaseManager,
        gateway: InMemoryChannelGateway,
        authorizer: StaticAdminAuthorizer,
        clock: FakeClock,
    ) -> None:
        settings = test_settings.model_copy(update={"deletion_journal_enabled": True})
        core = build_core(settings, db_manager, gateway, authorizer, clock=clock)
        await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!autodelete enable"))

        await core.router.dispatch(make_event(message_id="10"))
        await core.scheduler.wait_idle()

        rows = await SqlDeletionJournal(db_manager).list_for_channel(CHANNEL_ID)
        assert [row.message_id for row in rows] == ["10"]

    @pytest.mark.asyncio
    async def test_custom_prefix(
        self,
        test_settings: Settings,
        db_manager: DatabaseManager,
        gateway: InMemoryChannelGateway,
        authorizer: StaticAdminAuthorizer,
    ) -> None:
        settings = test_settings.model_copy(update={"command_prefix": "!purge"})
        core = build_core(settings, db_manager, gateway, authorizer)

        result = await core.router.dispatch(make_event(author_id=ADMIN_ID, text="!purge enable"))

        assert result.route == Route.COMMAND
        assert core.processor.prefix == "!purge"


class TestStartup:
    @pytest.mark.asyncio
    async def test_connect_database_creates_tables(self, test_settings: Settings) -> None:
        db = await connect_database(test_settings)
        try:
            await db.ping()
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_connect_database_failure(self, tmp_path: Path) -> None:
        settings = Settings(
            _env_file=None,
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'bot.db'}",
        )

        with pytest.raises(StartupError):
            await connect_database(settings)

    @pytest.mark.asyncio
    async def test_run_requires_token(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(update={"discord_bot_token": ""})

        with pytest.raises(StartupError, match="DISCORD_BOT_TOKEN"):
            await run(settings)
