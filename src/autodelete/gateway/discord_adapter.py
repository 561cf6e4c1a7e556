"""
Discord implementations of the chat platform interfaces.
"""

import asyncio
import logging

import aiohttp
import discord

from autodelete.gateway.interface import AdminAuthorizer, ChannelGateway
from autodelete.shared.exceptions import (
    MessageNotFoundError,
    MissingPermissionsError,
    NoticeFailedError,
    TransientDeleteError,
)

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class DiscordChannelGateway(ChannelGateway):
    """Deletes and posts through a connected discord.py client.

    Partial messageables are used so no channel or message fetch is needed
    before acting on ids.
    """

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        channel = self._client.get_partial_messageable(int(channel_id))
        message = channel.get_partial_message(int(message_id))
        try:
            await message.delete()
        except discord.NotFound as exc:
            raise MessageNotFoundError(channel_id, message_id) from exc
        except discord.Forbidden as exc:
            raise MissingPermissionsError(channel_id, message_id) from exc
        except discord.HTTPException as exc:
            raise TransientDeleteError(
                channel_id, message_id, reason=f"HTTP {exc.status}: {exc.text}"
            ) from exc
        except _NETWORK_ERRORS as exc:
            raise TransientDeleteError(channel_id, message_id, reason=str(exc)) from exc

    async def send_notice(self, channel_id: str, text: str) -> None:
        channel = self._client.get_partial_messageable(int(channel_id))
        try:
            await channel.send(text)
        except discord.HTTPException as exc:
            raise NoticeFailedError(channel_id, reason=f"HTTP {exc.status}") from exc
        except _NETWORK_ERRORS as exc:
            raise NoticeFailedError(channel_id, reason=str(exc)) from exc


class DiscordAdminAuthorizer(AdminAuthorizer):
    """Checks the member's roles for the administrator permission."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def is_admin(self, server_id: str, user_id: str) -> bool:
        if not server_id:
            return False
        guild = self._client.get_guild(int(server_id))
        if guild is None:
            logger.debug("Guild not cached", extra={"server_id": server_id})
            return False

        member = guild.get_member(int(user_id))
        if member is None:
            try:
                member = await guild.fetch_member(int(user_id))
            except discord.HTTPException as exc:
                logger.debug(
                    "Member lookup failed",
                    extra={"server_id": server_id, "user_id": user_id, "error": str(exc)},
                )
                return False

        return any(role.permissions.administrator for role in member.roles)
