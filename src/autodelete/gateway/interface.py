"""
Chat platform interface definition.

The core never talks to Discord directly: it consumes inbound MessageEvents,
deletes and replies through a ChannelGateway, and asks an AdminAuthorizer
whether a user may run control commands.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class MessageEvent:
    """A newly created chat message."""

    id: str
    channel_id: str
    server_id: str
    author_id: str
    text: str
    is_bot: bool = False
    # Platform timestamp, informational only: deletion delays count from
    # the time the bot processes the event.
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChannelGateway(ABC):
    """Abstract interface for acting on chat channels."""

    @abstractmethod
    async def delete_message(self, channel_id: str, message_id: str) -> None:
        """Delete one message.

        Raises:
            MessageNotFoundError: Message or channel is gone.
            MissingPermissionsError: Bot may not delete in this channel.
            TransientDeleteError: Network or server failure.
        """
        ...

    @abstractmethod
    async def send_notice(self, channel_id: str, text: str) -> None:
        """Post a plain text message to the channel.

        Raises:
            NoticeFailedError: The message could not be posted.
        """
        ...


class AdminAuthorizer(ABC):
    """Decides whether a user holds an administrator-equivalent role."""

    @abstractmethod
    async def is_admin(self, server_id: str, user_id: str) -> bool:
        """True if any of the user's roles in the server grants administrator."""
        ...
