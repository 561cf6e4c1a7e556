"""
Policy store backed by the channel_settings table.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autodelete.policies.models import (
    DEFAULT_DELAY_MINUTES,
    MAX_DELAY_MINUTES,
    ChannelPolicy,
    ChannelSettings,
)
from autodelete.shared.database import DatabaseManager
from autodelete.shared.exceptions import StorageError
from autodelete.shared.logging import get_logger

logger = get_logger(__name__)


class PolicyStore(Protocol):
    """Protocol for channel policy persistence."""

    async def get_or_create(self, channel_id: str, server_id: str) -> ChannelPolicy:
        """Return the channel's policy, creating a disabled default one if missing."""
        ...

    async def get(self, channel_id: str) -> ChannelPolicy | None:
        """Return the channel's policy, or None when the channel has none."""
        ...

    async def save(self, policy: ChannelPolicy) -> ChannelPolicy:
        """Upsert the full policy record."""
        ...


class SqlPolicyStore:
    """PolicyStore over async SQLAlchemy.

    Every operation opens its own session, so concurrent callers never share
    a transaction. Writes to the same channel are last-write-wins.
    """

    def __init__(
        self,
        db: DatabaseManager,
        default_delay_minutes: int = DEFAULT_DELAY_MINUTES,
    ) -> None:
        """Initialize store.

        Args:
            db: Database manager providing sessions.
            default_delay_minutes: Delay given to lazily created policies.
        """
        if not 0 < default_delay_minutes <= MAX_DELAY_MINUTES:
            raise ValueError(f"default_delay_minutes must be in 1..{MAX_DELAY_MINUTES}")
        self._db = db
        self._default_delay_minutes = default_delay_minutes

    async def get(self, channel_id: str) -> ChannelPolicy | None:
        """Read-only lookup by channel id.

        Raises:
            StorageError: The database could not be queried.
        """
        try:
            async with self._db.session() as session:
                row = await self._find(session, channel_id)
                return ChannelPolicy.from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error(
                "Policy lookup failed",
                extra={"channel_id": channel_id, "error": str(exc)},
            )
            raise StorageError(f"Could not read policy for channel {channel_id}") from exc

    async def get_or_create(self, channel_id: str, server_id: str) -> ChannelPolicy:
        """Return the existing policy or insert a disabled default one.

        Raises:
            StorageError: The database could not be queried or written.
        """
        try:
            async with self._db.session() as session:
                row = await self._find(session, channel_id)
                if row is not None:
                    return ChannelPolicy.from_row(row)

                row = ChannelSettings(
                    channel_id=channel_id,
                    server_id=server_id,
                    enabled=False,
                    delete_after_minutes=self._default_delay_minutes,
                )
                session.add(row)
                await session.flush()
                logger.info(
                    "Channel policy created",
                    extra={"channel_id": channel_id, "server_id": server_id},
                )
                return ChannelPolicy.from_row(row)
        except IntegrityError:
            # Another writer inserted the same channel first; use its row.
            logger.debug("Policy insert lost race, re-reading", extra={"channel_id": channel_id})
            policy = await self.get(channel_id)
            if policy is None:
                raise StorageError(f"Could not create policy for channel {channel_id}")
            return policy
        except SQLAlchemyError as exc:
            logger.error(
                "Policy get_or_create failed",
                extra={"channel_id": channel_id, "error": str(exc)},
            )
            raise StorageError(f"Could not load policy for channel {channel_id}") from exc

    async def save(self, policy: ChannelPolicy) -> ChannelPolicy:
        """Upsert every field of the policy.

        Raises:
            StorageError: The database could not be written.
        """
        try:
            try:
                await self._upsert(policy)
            except IntegrityError:
                # Row was inserted concurrently; the second pass updates it.
                await self._upsert(policy)
        except SQLAlchemyError as exc:
            logger.error(
                "Policy save failed",
                extra={"channel_id": policy.channel_id, "error": str(exc)},
            )
            raise StorageError(f"Could not save policy for channel {policy.channel_id}") from exc

        logger.info(
            "Channel policy saved",
            extra={
                "channel_id": policy.channel_id,
                "enabled": policy.enabled,
                "delay_minutes": policy.delay_minutes,
            },
        )
        return policy

    @staticmethod
    async def _find(session: AsyncSession, channel_id: str) -> ChannelSettings | None:
        stmt = select(ChannelSettings).where(ChannelSettings.channel_id == channel_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _upsert(self, policy: ChannelPolicy) -> None:
        async with self._db.session() as session:
            row = await self._find(session, policy.channel_id)
            if row is None:
                row = ChannelSettings(channel_id=policy.channel_id)
                session.add(row)
            row.server_id = policy.server_id
            row.enabled = policy.enabled
            row.delete_after_minutes = policy.delay_minutes
            await session.flush()
