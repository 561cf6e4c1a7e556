"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from autodelete.config import Settings
from autodelete.deletions.scheduler import DeletionScheduler, DeletionSchedulerConfig
from autodelete.gateway.interface import MessageEvent
from autodelete.gateway.mock_adapter import InMemoryChannelGateway, StaticAdminAuthorizer
from autodelete.policies.commands import PolicyCommandProcessor
from autodelete.policies.repository import SqlPolicyStore
from autodelete.shared.database import DatabaseManager

SERVER_ID = "100"
CHANNEL_ID = "200"
ADMIN_ID = "300"
MEMBER_ID = "301"
BOT_ID = "999"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        debug=True,
        discord_bot_token="test-token",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'autodelete.db'}",
    )


@pytest_asyncio.fixture
async def db_manager(test_settings: Settings) -> AsyncGenerator[DatabaseManager, None]:
    """File-backed SQLite database with all tables created."""
    db = DatabaseManager(test_settings.resolved_database_url)
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
def policy_store(db_manager: DatabaseManager) -> SqlPolicyStore:
    return SqlPolicyStore(db_manager)


@pytest.fixture
def gateway() -> InMemoryChannelGateway:
    return InMemoryChannelGateway()


@pytest.fixture
def authorizer() -> StaticAdminAuthorizer:
    return StaticAdminAuthorizer({(SERVER_ID, ADMIN_ID)})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def processor(
    policy_store: SqlPolicyStore,
    authorizer: StaticAdminAuthorizer,
    gateway: InMemoryChannelGateway,
) -> PolicyCommandProcessor:
    return PolicyCommandProcessor(store=policy_store, authorizer=authorizer, gateway=gateway)


@pytest.fixture
def scheduler(
    policy_store: SqlPolicyStore,
    gateway: InMemoryChannelGateway,
    clock: FakeClock,
) -> DeletionScheduler:
    return DeletionScheduler(
        store=policy_store,
        gateway=gateway,
        config=DeletionSchedulerConfig(max_concurrent_deletes=4, max_idle_seconds=0.05),
        clock=clock,
    )


def make_event(
    message_id: str = "1",
    text: str = "hello",
    author_id: str = MEMBER_ID,
    channel_id: str = CHANNEL_ID,
    server_id: str = SERVER_ID,
    is_bot: bool = False,
) -> MessageEvent:
    return MessageEvent(
        id=message_id,
        channel_id=channel_id,
        server_id=server_id,
        author_id=author_id,
        text=text,
        is_bot=is_bot,
    )
