"""
Optional record of scheduled deletions, kept for debugging.

The scheduler writes to the journal from a detached task; nothing reads it
back at startup.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from autodelete.deletions.models import ScheduledDeletion, ScheduledDeletionRecord
from autodelete.shared.database import DatabaseManager
from autodelete.shared.exceptions import StorageError


class DeletionJournal(Protocol):
    """Protocol for recording scheduled deletions."""

    async def record(self, entry: ScheduledDeletion, author_id: str) -> None:
        """Persist one scheduled deletion."""
        ...


class SqlDeletionJournal:
    """DeletionJournal writing to the scheduled_deletions table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def record(self, entry: ScheduledDeletion, author_id: str) -> None:
        """Insert a journal row.

        Raises:
            StorageError: The row could not be written.
        """
        try:
            async with self._db.session() as session:
                session.add(
                    ScheduledDeletionRecord(
                        message_id=entry.message_id,
                        channel_id=entry.channel_id,
                        server_id=entry.server_id,
                        author_id=author_id,
                        fire_at=entry.fire_at,
                    )
                )
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Could not journal deletion of message {entry.message_id}"
            ) from exc

    async def list_for_channel(self, channel_id: str) -> list[ScheduledDeletionRecord]:
        """Journal rows of one channel, oldest fire time first."""
        async with self._db.session() as session:
            stmt = (
                select(ScheduledDeletionRecord)
                .where(ScheduledDeletionRecord.channel_id == channel_id)
                .order_by(ScheduledDeletionRecord.fire_at.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
