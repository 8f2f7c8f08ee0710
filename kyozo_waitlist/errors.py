"""Error types for the Kyozo waitlist.

Field-level validation problems are reported as FieldError values and are
never raised. Everything that can go wrong across an adapter boundary is an
exception rooted at WaitlistError, so callers can tell a pipeline-fatal
failure (identity, persistence) from a best-effort one (notification).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from kyozo_waitlist.types import FieldErrorCode


# User-facing texts shown for failed actions
IDENTITY_FAILURE_MESSAGE = "Authentication failed. Please try again."
PERSISTENCE_FAILURE_MESSAGE = "Failed to submit form. Please try again."
REPLY_FAILURE_MESSAGE = "Failed to send reply. Please try again."


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        path: Submission field name in its stored form (e.g. "firstName")
        code: Specific validation error code
        message: Human-readable error shown next to the field

    Examples:
        >>> err = FieldError(
        ...     path="email",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Please enter a valid email",
        ... )
        >>> err.path
        'email'
    """
    path: str
    code: FieldErrorCode
    message: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }


class WaitlistError(Exception):
    """Base class for all waitlist failures."""


class IdentityAcquisitionError(WaitlistError):
    """Raised when the pipeline cannot obtain an identity token.

    Fatal for the current submission attempt.
    """

    def __init__(self, message: str = IDENTITY_FAILURE_MESSAGE, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class PersistenceError(WaitlistError):
    """Raised when the store rejects a submission write.

    Fatal for the current submission attempt; the record is not assumed to
    have been written. ``user_id`` is the identity acquired before the write,
    kept so a retry does not need a new one.
    """

    def __init__(
        self,
        message: str = PERSISTENCE_FAILURE_MESSAGE,
        cause: Optional[BaseException] = None,
        user_id: Optional[str] = None,
    ):
        self.cause = cause
        self.user_id = user_id
        super().__init__(message)


class NotificationError(WaitlistError):
    """Raised by the notification adapter when an email cannot be sent."""


class StoreError(WaitlistError):
    """Raised by a store adapter when an operation fails."""


class SubmissionNotFoundError(StoreError):
    """Raised when a store operation names an id that does not exist."""

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission {submission_id} not found")


class IdentityProviderError(WaitlistError):
    """Raised by the identity adapter with the provider's error code.

    Attributes:
        code: Provider error code (e.g. "INVALID_LOGIN_CREDENTIALS")
    """

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or code)


class AdminAuthenticationError(WaitlistError):
    """Raised when an admin operation is attempted without a valid login."""


class ReplyError(WaitlistError):
    """Raised when an admin reply could not be sent."""

    def __init__(self, message: str = REPLY_FAILURE_MESSAGE, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class SessionNotFoundError(WaitlistError):
    """Raised when a form session id is unknown to the runtime."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Form session {session_id} not found")


__all__ = [
    "IDENTITY_FAILURE_MESSAGE",
    "PERSISTENCE_FAILURE_MESSAGE",
    "REPLY_FAILURE_MESSAGE",
    "FieldError",
    "WaitlistError",
    "IdentityAcquisitionError",
    "PersistenceError",
    "NotificationError",
    "StoreError",
    "SubmissionNotFoundError",
    "IdentityProviderError",
    "AdminAuthenticationError",
    "ReplyError",
    "SessionNotFoundError",
]
