"""
Inbound message routing.

Each new message goes down exactly one path: dropped (the bot's own output),
handled as a control command, or offered to the deletion scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from autodelete.deletions.models import ScheduledDeletion
from autodelete.deletions.scheduler import DeletionScheduler
from autodelete.gateway.interface import MessageEvent
from autodelete.policies.commands import CommandResult, PolicyCommandProcessor
from autodelete.shared.logging import correlation_id_var, get_logger

logger = get_logger(__name__)


class Route(str, Enum):
    SELF = "self"
    COMMAND = "command"
    SCHEDULER = "scheduler"


@dataclass(frozen=True)
class RoutingResult:
    route: Route
    command: CommandResult | None = None
    scheduled: ScheduledDeletion | None = None


class MessageRouter:
    """Dispatches MessageEvents to the command processor or the scheduler."""

    def __init__(
        self,
        processor: PolicyCommandProcessor,
        scheduler: DeletionScheduler,
        bot_user_id: str | None = None,
    ) -> None:
        self._processor = processor
        self._scheduler = scheduler
        # Known once the client has logged in.
        self.bot_user_id = bot_user_id

    async def dispatch(self, event: MessageEvent) -> RoutingResult:
        token = correlation_id_var.set(event.id)
        try:
            if self.bot_user_id is not None and event.author_id == self.bot_user_id:
                return RoutingResult(Route.SELF)

            if self._processor.is_command(event.text):
                result = await self._processor.handle(event)
                logger.info(
                    "Control command handled",
                    extra={"channel_id": event.channel_id, "outcome": result.outcome.value},
                )
                return RoutingResult(Route.COMMAND, command=result)

            scheduled = await self._scheduler.on_message_created(event)
            return RoutingResult(Route.SCHEDULER, scheduled=scheduled)
        finally:
            correlation_id_var.reset(token)
