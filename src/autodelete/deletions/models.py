from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from autodelete.shared.database import Base


@dataclass(frozen=True, order=True)
class ScheduledDeletion:
    """A pending request to remove one message at fire_at.

    Ordering is by (fire_at, sequence) so entries can live in a heap; the
    sequence breaks ties in registration order.
    """

    fire_at: datetime
    sequence: int
    message_id: str = field(compare=False)
    channel_id: str = field(compare=False)
    server_id: str = field(default="", compare=False)


@dataclass
class SchedulerStats:
    """Counters exposed by the deletion scheduler."""

    scheduled: int = 0
    deleted: int = 0
    failed: int = 0
    cancelled: int = 0
    journal_failures: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "scheduled": self.scheduled,
            "deleted": self.deleted,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "journal_failures": self.journal_failures,
        }


class ScheduledDeletionRecord(Base):
    """Journal row written when a deletion is scheduled. Content is never stored."""

    __tablename__ = "scheduled_deletions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    server_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    fire_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
