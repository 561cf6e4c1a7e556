"""
Custom exceptions for the application.
"""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Storage errors
class StorageError(AppError):
    """The policy store (or journal) could not be reached or written."""

    def __init__(self, message: str = "Storage unavailable") -> None:
        super().__init__(message, "STORAGE_ERROR")


# Delete errors
class DeleteFailedError(AppError):
    """The chat platform rejected a delete request."""

    def __init__(
        self,
        message: str = "Delete failed",
        channel_id: str | None = None,
        message_id: str | None = None,
    ) -> None:
        super().__init__(message, "DELETE_FAILED")
        self.channel_id = channel_id
        self.message_id = message_id


class MessageNotFoundError(DeleteFailedError):
    """Message (or its channel) no longer exists."""

    def __init__(self, channel_id: str, message_id: str) -> None:
        super().__init__(
            f"Message {message_id} not found in channel {channel_id}",
            channel_id=channel_id,
            message_id=message_id,
        )
        self.code = "MESSAGE_NOT_FOUND"


class MissingPermissionsError(DeleteFailedError):
    """Bot lacks the permission to delete in the channel."""

    def __init__(self, channel_id: str, message_id: str) -> None:
        super().__init__(
            f"Missing permission to delete message {message_id} in channel {channel_id}",
            channel_id=channel_id,
            message_id=message_id,
        )
        self.code = "MISSING_PERMISSIONS"


class TransientDeleteError(DeleteFailedError):
    """Network or server-side failure; the delete may succeed later."""

    def __init__(self, channel_id: str, message_id: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Transient failure deleting message {message_id} in channel {channel_id}{detail}",
            channel_id=channel_id,
            message_id=message_id,
        )
        self.code = "TRANSIENT_DELETE_ERROR"


class ValidationError(AppError):
    """Validation error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "VALIDATION_ERROR")


# Authorization errors
class AuthorizationDeniedError(AppError):
    """Invoker is not allowed to run control commands."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message, "AUTHORIZATION_DENIED")


class NoticeFailedError(AppError):
    """A reply could not be posted to the channel."""

    def __init__(self, channel_id: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Could not post to channel {channel_id}{detail}", "NOTICE_FAILED")
        self.channel_id = channel_id
