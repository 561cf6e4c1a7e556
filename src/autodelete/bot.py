"""
Discord client: turns gateway messages into MessageEvents for the router.
"""

from __future__ import annotations

import discord

from autodelete.gateway.interface import MessageEvent
from autodelete.router import MessageRouter
from autodelete.shared.logging import get_logger

logger = get_logger(__name__)


def build_intents() -> discord.Intents:
    """Guild message events with content, plus member info for role checks."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True
    return intents


def event_from_message(message: discord.Message) -> MessageEvent:
    return MessageEvent(
        id=str(message.id),
        channel_id=str(message.channel.id),
        server_id=str(message.guild.id) if message.guild is not None else "",
        author_id=str(message.author.id),
        text=message.content or "",
        is_bot=bool(message.author.bot),
        created_at=message.created_at,
    )


class AutoDeleteClient(discord.Client):
    """discord.Client forwarding every new message to a MessageRouter.

    Edits and deletions are not forwarded.
    """

    def __init__(self, *, intents: discord.Intents | None = None) -> None:
        super().__init__(intents=intents or build_intents())
        self.router: MessageRouter | None = None

    def attach_router(self, router: MessageRouter) -> None:
        self.router = router
        if self.user is not None:
            router.bot_user_id = str(self.user.id)

    async def on_ready(self) -> None:
        if self.user is None:
            return
        if self.router is not None:
            self.router.bot_user_id = str(self.user.id)
        logger.info(
            "Connected to Discord",
            extra={"bot_user_id": str(self.user.id), "guilds": len(self.guilds)},
        )

    async def on_message(self, message: discord.Message) -> None:
        if self.router is None:
            return
        if self.router.bot_user_id is None and self.user is not None:
            self.router.bot_user_id = str(self.user.id)
        await self.router.dispatch(event_from_message(message))
