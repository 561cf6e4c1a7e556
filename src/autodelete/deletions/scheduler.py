"""
Delayed message deletion.

Scheduled deletions live in one time-ordered heap. A single dispatcher task
sleeps until the earliest fire time (or until a new registration wakes it),
then hands each due entry to its own delete task. Delete tasks are detached:
their outcome is only visible through logging and the stats counters.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from autodelete.deletions.journal import DeletionJournal
from autodelete.deletions.models import ScheduledDeletion, SchedulerStats
from autodelete.gateway.interface import ChannelGateway, MessageEvent
from autodelete.policies.repository import PolicyStore
from autodelete.shared.exceptions import DeleteFailedError, StorageError
from autodelete.shared.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeletionSchedulerConfig:
    """Configuration for the deletion scheduler."""

    max_concurrent_deletes: int = 10
    max_idle_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_concurrent_deletes <= 0:
            raise ValueError("max_concurrent_deletes must be > 0")
        if self.max_idle_seconds <= 0:
            raise ValueError("max_idle_seconds must be > 0")


class DeletionScheduler:
    """Arranges one delete attempt per qualifying message after its channel's delay.

    The delay is captured when the message is scheduled; later policy edits do
    not move or withdraw entries unless cancel()/cancel_channel() is called.
    """

    def __init__(
        self,
        store: PolicyStore,
        gateway: ChannelGateway,
        config: DeletionSchedulerConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        journal: DeletionJournal | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._config = config or DeletionSchedulerConfig()
        self._clock = clock
        self._journal = journal

        self._heap: list[ScheduledDeletion] = []
        self._pending: dict[str, ScheduledDeletion] = {}
        self._sequence = itertools.count()
        self._wakeup = asyncio.Event()
        self._delete_slots = asyncio.Semaphore(self._config.max_concurrent_deletes)
        self._inflight: set[asyncio.Task[None]] = set()

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self.stats = SchedulerStats()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    @property
    def next_fire_at(self) -> datetime | None:
        self._discard_cancelled_head()
        return self._heap[0].fire_at if self._heap else None

    async def on_message_created(self, event: MessageEvent) -> ScheduledDeletion | None:
        """Schedule deletion of the message if its channel has auto-delete enabled.

        The delay counts from processing time (the scheduler clock), not from
        event.created_at. Returns the registered entry, or None when nothing was
        scheduled. Never waits for the deletion itself.
        """
        try:
            policy = await self._store.get(event.channel_id)
        except StorageError:
            logger.warning(
                "Policy lookup failed; message not scheduled",
                extra={"channel_id": event.channel_id, "message_id": event.id},
            )
            return None

        if policy is None or not policy.enabled:
            return None

        existing = self._pending.get(event.id)
        if existing is not None:
            logger.debug("Message already scheduled", extra={"message_id": event.id})
            return existing

        try:
            fire_at = self._clock() + policy.delay
        except OverflowError:
            logger.error(
                "Deletion time out of range; message not scheduled",
                extra={
                    "channel_id": event.channel_id,
                    "message_id": event.id,
                    "delay_minutes": policy.delay_minutes,
                },
            )
            return None

        entry = ScheduledDeletion(
            fire_at=fire_at,
            sequence=next(self._sequence),
            message_id=event.id,
            channel_id=event.channel_id,
            server_id=event.server_id,
        )
        heapq.heappush(self._heap, entry)
        self._pending[entry.message_id] = entry
        self.stats.scheduled += 1
        self._wakeup.set()

        if self._journal is not None:
            self._spawn(self._journal_entry(self._journal, entry, event.author_id))

        logger.debug(
            "Message scheduled for deletion",
            extra={
                "channel_id": entry.channel_id,
                "message_id": entry.message_id,
                "posted_at": event.created_at.isoformat(),
                "fire_at": entry.fire_at.isoformat(),
            },
        )
        return entry

    def cancel(self, message_id: str) -> bool:
        """Withdraw a pending deletion. False if it is unknown or already fired."""
        if self._pending.pop(message_id, None) is None:
            return False
        self.stats.cancelled += 1
        return True

    def cancel_channel(self, channel_id: str) -> int:
        """Withdraw every pending deletion in a channel; returns how many."""
        message_ids = [
            message_id
            for message_id, entry in self._pending.items()
            if entry.channel_id == channel_id
        ]
        for message_id in message_ids:
            del self._pending[message_id]
        self.stats.cancelled += len(message_ids)
        if message_ids:
            logger.info(
                "Pending deletions cancelled",
                extra={"channel_id": channel_id, "cancelled": len(message_ids)},
            )
        return len(message_ids)

    def dispatch_due(self, now: datetime | None = None) -> int:
        """Start a delete task for every pending entry due at `now`.

        Returns:
            Number of delete tasks started.
        """
        now = now or self._clock()
        fired = 0
        while self._heap and self._heap[0].fire_at <= now:
            entry = heapq.heappop(self._heap)
            if self._pending.get(entry.message_id) is not entry:
                continue
            del self._pending[entry.message_id]
            self._spawn(self._fire(entry))
            fired += 1
        return fired

    async def wait_idle(self) -> None:
        """Wait until every in-flight delete and journal task has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def start(self) -> None:
        """Start the dispatcher background task."""
        if self._running:
            logger.warning("Deletion scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Deletion scheduler started")

    async def stop(self) -> None:
        """Stop the dispatcher and let in-flight deletes finish.

        Pending entries that have not fired yet are dropped.
        """
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self.wait_idle()
        logger.info(
            "Deletion scheduler stopped",
            extra={"dropped_pending": len(self._pending), **self.stats.as_dict()},
        )

    async def _run_loop(self) -> None:
        """Main dispatcher loop."""
        while self._running:
            self._wakeup.clear()
            timeout = self._seconds_until_next_due()
            if timeout > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass
            try:
                self.dispatch_due()
            except Exception:
                logger.exception("Dispatcher iteration failed")

    def _seconds_until_next_due(self) -> float:
        next_fire_at = self.next_fire_at
        if next_fire_at is None:
            return self._config.max_idle_seconds
        remaining = (next_fire_at - self._clock()).total_seconds()
        return min(max(remaining, 0.0), self._config.max_idle_seconds)

    def _discard_cancelled_head(self) -> None:
        while self._heap and self._pending.get(self._heap[0].message_id) is not self._heap[0]:
            heapq.heappop(self._heap)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    async def _fire(self, entry: ScheduledDeletion) -> None:
        async with self._delete_slots:
            try:
                await self._gateway.delete_message(entry.channel_id, entry.message_id)
            except DeleteFailedError as exc:
                self.stats.failed += 1
                logger.warning(
                    "Scheduled delete failed",
                    extra={
                        "channel_id": entry.channel_id,
                        "message_id": entry.message_id,
                        "error_code": exc.code,
                        "error": exc.message,
                    },
                )
                return
            except Exception:
                self.stats.failed += 1
                logger.exception(
                    "Unexpected error during scheduled delete",
                    extra={"channel_id": entry.channel_id, "message_id": entry.message_id},
                )
                return

        self.stats.deleted += 1
        logger.info(
            "Scheduled message deleted",
            extra={"channel_id": entry.channel_id, "message_id": entry.message_id},
        )

    async def _journal_entry(
        self,
        journal: DeletionJournal,
        entry: ScheduledDeletion,
        author_id: str,
    ) -> None:
        try:
            await journal.record(entry, author_id)
        except StorageError as exc:
            self.stats.journal_failures += 1
            logger.warning(
                "Could not journal scheduled deletion",
                extra={"message_id": entry.message_id, "error": exc.message},
            )
