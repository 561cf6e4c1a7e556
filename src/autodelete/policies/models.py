"""
Channel retention policy: ORM row and immutable value object.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from autodelete.shared.database import Base

DEFAULT_DELAY_MINUTES = 2
# One year
MAX_DELAY_MINUTES = 525_600


class ChannelSettings(Base):
    """One retention policy row per channel."""

    __tablename__ = "channel_settings"
    __table_args__ = (
        CheckConstraint("delete_after_minutes > 0", name="ck_channel_settings_delay_positive"),
        CheckConstraint(
            f"delete_after_minutes <= {MAX_DELAY_MINUTES}",
            name="ck_channel_settings_delay_max",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    server_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delete_after_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_DELAY_MINUTES,
        server_default=str(DEFAULT_DELAY_MINUTES),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<ChannelSettings channel_id={self.channel_id} "
            f"enabled={self.enabled} delete_after_minutes={self.delete_after_minutes}>"
        )


@dataclass(frozen=True)
class ChannelPolicy:
    """Snapshot of a channel's retention policy.

    Instances are detached from the database: later edits to the stored row
    do not change a policy someone already holds.
    """

    channel_id: str
    server_id: str = ""
    enabled: bool = False
    delay_minutes: int = DEFAULT_DELAY_MINUTES

    def __post_init__(self) -> None:
        if not self.channel_id:
            raise ValueError("channel_id must not be empty")
        if not 0 < self.delay_minutes <= MAX_DELAY_MINUTES:
            raise ValueError(f"delay_minutes must be in 1..{MAX_DELAY_MINUTES}")

    @property
    def delay(self) -> timedelta:
        return timedelta(minutes=self.delay_minutes)

    def with_enabled(self, enabled: bool) -> ChannelPolicy:
        return replace(self, enabled=enabled)

    def with_delay(self, delay_minutes: int) -> ChannelPolicy:
        return replace(self, delay_minutes=delay_minutes)

    @classmethod
    def from_row(cls, row: ChannelSettings) -> ChannelPolicy:
        return cls(
            channel_id=row.channel_id,
            server_id=row.server_id,
            enabled=bool(row.enabled),
            delay_minutes=int(row.delete_after_minutes),
        )
