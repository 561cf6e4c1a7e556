"""
In-memory chat platform adapters for testing.
"""

import logging

from autodelete.gateway.interface import AdminAuthorizer, ChannelGateway
from autodelete.shared.exceptions import (
    DeleteFailedError,
    MessageNotFoundError,
    MissingPermissionsError,
    NoticeFailedError,
    TransientDeleteError,
)

logger = logging.getLogger(__name__)

_FAILURES: dict[str, type[DeleteFailedError]] = {
    "not_found": MessageNotFoundError,
    "forbidden": MissingPermissionsError,
    "transient": TransientDeleteError,
}


class InMemoryChannelGateway(ChannelGateway):
    """Mock gateway recording deletes and notices."""

    def __init__(self) -> None:
        self._deleted: list[tuple[str, str]] = []
        self._notices: list[tuple[str, str]] = []
        self._delete_attempts: list[tuple[str, str]] = []
        self._failures: dict[str, str] = {}
        self._fail_notices: bool = False

    def reset(self) -> None:
        self._deleted.clear()
        self._notices.clear()
        self._delete_attempts.clear()
        self._failures.clear()
        self._fail_notices = False

    def configure_delete_failure(self, message_id: str, kind: str = "not_found") -> None:
        """Make deleting message_id raise; kind is not_found, forbidden or transient."""
        if kind not in _FAILURES:
            raise ValueError(f"Unknown failure kind: {kind}")
        self._failures[message_id] = kind

    def configure_notice_failure(self, should_fail: bool = True) -> None:
        self._fail_notices = should_fail

    @property
    def deleted(self) -> list[tuple[str, str]]:
        return self._deleted.copy()

    @property
    def delete_attempts(self) -> list[tuple[str, str]]:
        return self._delete_attempts.copy()

    @property
    def notices(self) -> list[tuple[str, str]]:
        return self._notices.copy()

    def get_last_notice(self) -> tuple[str, str] | None:
        return self._notices[-1] if self._notices else None

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        logger.info(
            "Mock: deleting message",
            extra={"channel_id": channel_id, "message_id": message_id},
        )
        self._delete_attempts.append((channel_id, message_id))

        kind = self._failures.get(message_id)
        if kind is not None:
            raise _FAILURES[kind](channel_id, message_id)

        if (channel_id, message_id) in self._deleted:
            raise MessageNotFoundError(channel_id, message_id)
        self._deleted.append((channel_id, message_id))

    async def send_notice(self, channel_id: str, text: str) -> None:
        if self._fail_notices:
            raise NoticeFailedError(channel_id, reason="mock failure")
        self._notices.append((channel_id, text))


class StaticAdminAuthorizer(AdminAuthorizer):
    """Authorizer backed by a fixed set of (server_id, user_id) admins."""

    def __init__(self, admins: set[tuple[str, str]] | None = None) -> None:
        self._admins: set[tuple[str, str]] = set(admins or ())

    def grant(self, server_id: str, user_id: str) -> None:
        self._admins.add((server_id, user_id))

    def revoke(self, server_id: str, user_id: str) -> None:
        self._admins.discard((server_id, user_id))

    async def is_admin(self, server_id: str, user_id: str) -> bool:
        return (server_id, user_id) in self._admins
