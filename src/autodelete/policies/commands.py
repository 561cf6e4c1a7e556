"""
Admin control commands that edit a channel's retention policy.

Surface (prefix configurable, ``!autodelete`` by default)::

    !autodelete enable [minutes]
    !autodelete disable
    !autodelete set <minutes>
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from autodelete.gateway.interface import AdminAuthorizer, ChannelGateway, MessageEvent
from autodelete.policies.models import MAX_DELAY_MINUTES, ChannelPolicy
from autodelete.policies.repository import PolicyStore
from autodelete.shared.exceptions import (
    AuthorizationDeniedError,
    NoticeFailedError,
    StorageError,
    ValidationError,
)
from autodelete.shared.logging import get_logger

logger = get_logger(__name__)

INVALID_MINUTES_REPLY = "Invalid minutes value. Please provide a positive number."

# Optional sign, ASCII digits only
_MINUTES_RE = re.compile(r"[+-]?[0-9]+")


class CommandOutcome(str, Enum):
    """What a control command ended up doing."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    DELAY_UPDATED = "delay_updated"
    USAGE = "usage"
    INVALID = "invalid"
    UNAUTHORIZED = "unauthorized"
    STORAGE_FAILED = "storage_failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of handling one message as a control command."""

    outcome: CommandOutcome
    policy: ChannelPolicy | None = None
    reply: str | None = None

    @property
    def changed_state(self) -> bool:
        return self.outcome in (
            CommandOutcome.ENABLED,
            CommandOutcome.DISABLED,
            CommandOutcome.DELAY_UPDATED,
        )


def parse_minutes(raw: str) -> int:
    """Parse a whole number of minutes between 1 and MAX_DELAY_MINUTES.

    Raises:
        ValidationError: raw is not an integer in range.
    """
    raw = raw.strip()
    if not _MINUTES_RE.fullmatch(raw):
        raise ValidationError(INVALID_MINUTES_REPLY)
    minutes = int(raw)
    if not 0 < minutes <= MAX_DELAY_MINUTES:
        raise ValidationError(INVALID_MINUTES_REPLY)
    return minutes


class PolicyCommandProcessor:
    """Interprets control commands and applies them to the PolicyStore."""

    def __init__(
        self,
        store: PolicyStore,
        authorizer: AdminAuthorizer,
        gateway: ChannelGateway,
        prefix: str = "!autodelete",
        on_disable: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize processor.

        Args:
            store: Policy persistence.
            authorizer: Admin role check.
            gateway: Used to post replies.
            prefix: First token of every control command.
            on_disable: Awaited with the channel id after a successful disable.
        """
        self._store = store
        self._authorizer = authorizer
        self._gateway = gateway
        self._prefix = prefix
        self._on_disable = on_disable

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def usage(self) -> str:
        return f"Usage: {self._prefix} [enable|disable|set] [minutes]"

    @property
    def set_usage(self) -> str:
        return f"Usage: {self._prefix} set [minutes]"

    def is_command(self, text: str) -> bool:
        parts = text.split(maxsplit=1)
        return bool(parts) and parts[0] == self._prefix

    async def handle(self, event: MessageEvent) -> CommandResult:
        """Authorize, parse and apply one control command.

        Unauthorized callers get no reply and cause no state change.
        """
        if event.is_bot or not self.is_command(event.text):
            return CommandResult(CommandOutcome.IGNORED)

        try:
            await self._authorize(event)
        except AuthorizationDeniedError:
            logger.debug(
                "Control command from non-admin ignored",
                extra={"channel_id": event.channel_id, "author_id": event.author_id},
            )
            return CommandResult(CommandOutcome.UNAUTHORIZED)

        parts = event.text.split()
        if len(parts) < 2:
            return await self._reply(event, CommandResult(CommandOutcome.USAGE, reply=self.usage))

        sub_command = parts[1].lower()
        argument = parts[2] if len(parts) >= 3 else None

        try:
            if sub_command == "enable":
                result = await self._enable(event, argument)
            elif sub_command == "disable":
                result = await self._disable(event)
            elif sub_command == "set":
                result = await self._set(event, argument)
            else:
                result = CommandResult(CommandOutcome.USAGE, reply=self.usage)
        except ValidationError as exc:
            result = CommandResult(CommandOutcome.INVALID, reply=exc.message)
        except StorageError:
            logger.exception(
                "Control command aborted by storage failure",
                extra={"channel_id": event.channel_id, "sub_command": sub_command},
            )
            return CommandResult(CommandOutcome.STORAGE_FAILED)

        return await self._reply(event, result)

    async def _authorize(self, event: MessageEvent) -> None:
        if not await self._authorizer.is_admin(event.server_id, event.author_id):
            raise AuthorizationDeniedError()

    async def _enable(self, event: MessageEvent, argument: str | None) -> CommandResult:
        minutes = parse_minutes(argument) if argument is not None else None
        policy = await self._store.get_or_create(event.channel_id, event.server_id)
        policy = policy.with_enabled(True)
        if minutes is not None:
            policy = policy.with_delay(minutes)
        policy = await self._store.save(policy)
        return CommandResult(
            CommandOutcome.ENABLED,
            policy=policy,
            reply=(
                "Auto-delete enabled for this channel "
                f"(deleting after {policy.delay_minutes} minutes)"
            ),
        )

    async def _disable(self, event: MessageEvent) -> CommandResult:
        policy = await self._store.get_or_create(event.channel_id, event.server_id)
        policy = await self._store.save(policy.with_enabled(False))
        if self._on_disable is not None:
            await self._on_disable(event.channel_id)
        return CommandResult(
            CommandOutcome.DISABLED,
            policy=policy,
            reply="Auto-delete disabled for this channel",
        )

    async def _set(self, event: MessageEvent, argument: str | None) -> CommandResult:
        if argument is None:
            return CommandResult(CommandOutcome.USAGE, reply=self.set_usage)
        minutes = parse_minutes(argument)
        policy = await self._store.get_or_create(event.channel_id, event.server_id)
        policy = await self._store.save(policy.with_delay(minutes))
        return CommandResult(
            CommandOutcome.DELAY_UPDATED,
            policy=policy,
            reply=f"Auto-delete time updated to {policy.delay_minutes} minutes",
        )

    async def _reply(self, event: MessageEvent, result: CommandResult) -> CommandResult:
        if result.reply is None:
            return result
        try:
            await self._gateway.send_notice(event.channel_id, result.reply)
        except NoticeFailedError as exc:
            logger.warning(
                "Could not post command reply",
                extra={"channel_id": event.channel_id, "error": exc.message},
            )
        return result
