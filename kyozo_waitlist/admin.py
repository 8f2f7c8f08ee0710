"""Admin access: login gate, submissions view, and replies.

The admin session is ephemeral and lives only with the caller. It becomes
authenticated solely through a successful email/password check at the
identity provider; lockout and rate limiting are left to the provider.
Provider error codes are translated into a small fixed set of messages.

Once authenticated, an AdminConsole browses, filters, exports and deletes
stored submissions, and composes replies through the notification adapter.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from kyozo_waitlist.adapters.email import Notifier
from kyozo_waitlist.adapters.identity import IdentityProvider
from kyozo_waitlist.adapters.store import SubmissionStore
from kyozo_waitlist.errors import (
    AdminAuthenticationError,
    IdentityProviderError,
    ReplyError,
)
from kyozo_waitlist.events import EventEmitter, FormEvent
from kyozo_waitlist.export import build_export_csv
from kyozo_waitlist.submission import Submission
from kyozo_waitlist.types import EventType, Segment

logger = logging.getLogger(__name__)


INVALID_CREDENTIALS_MESSAGE = "Invalid email or password. Please try again."
USER_NOT_FOUND_MESSAGE = "No account found with this email."
TOO_MANY_REQUESTS_MESSAGE = "Too many failed attempts. Please try again later."
LOGIN_FAILED_MESSAGE = "Login failed. Please try again."

# Provider error code -> user-facing message. REST codes and client SDK codes
# both appear depending on where the check ran.
LOGIN_ERROR_MESSAGES: Dict[str, str] = {
    "INVALID_LOGIN_CREDENTIALS": INVALID_CREDENTIALS_MESSAGE,
    "INVALID_PASSWORD": INVALID_CREDENTIALS_MESSAGE,
    "INVALID_EMAIL": INVALID_CREDENTIALS_MESSAGE,
    "auth/invalid-credential": INVALID_CREDENTIALS_MESSAGE,
    "auth/wrong-password": INVALID_CREDENTIALS_MESSAGE,
    "EMAIL_NOT_FOUND": USER_NOT_FOUND_MESSAGE,
    "auth/user-not-found": USER_NOT_FOUND_MESSAGE,
    "TOO_MANY_ATTEMPTS_TRY_LATER": TOO_MANY_REQUESTS_MESSAGE,
    "auth/too-many-requests": TOO_MANY_REQUESTS_MESSAGE,
}


def login_error_message(code: str) -> str:
    return LOGIN_ERROR_MESSAGES.get(code, LOGIN_FAILED_MESSAGE)


@dataclass
class AdminSession:
    """Client-side admin session. Authenticated only after a provider check."""
    authenticated: bool = False
    email: Optional[str] = None
    user_id: Optional[str] = None

    def clear(self) -> None:
        self.authenticated = False
        self.email = None
        self.user_id = None


@dataclass(frozen=True)
class AdminLoginResult:
    ok: bool
    message: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        if self.ok:
            return {"success": True}
        return {"success": False, "error": self.message}


class AdminSessionGate:
    """Email/password login in front of the admin view.

    After a failed attempt the password field is cleared and the email is
    kept, so the operator only retypes the password.

    Attributes:
        session: The admin session this gate unlocks
        email: Email field as last submitted
        password: Password field; cleared after every attempt
    """

    def __init__(
        self,
        identity: IdentityProvider,
        session: Optional[AdminSession] = None,
        emitter: Optional[EventEmitter] = None,
    ) -> None:
        self.identity = identity
        self.session = session or AdminSession()
        self.emitter = emitter or EventEmitter()
        self.email = ""
        self.password = ""

    async def login(self, email: str, password: str) -> AdminLoginResult:
        self.email = email
        self.password = password
        try:
            user_id = await self.identity.sign_in_with_password(email, password)
        except IdentityProviderError as exc:
            message = login_error_message(exc.code)
            logger.warning("Admin login failed: %s", exc.code)
            self.password = ""
            self.session.clear()
            self.emitter.emit(FormEvent.create(EventType.ADMIN_LOGIN_FAILED, payload={"code": exc.code}))
            return AdminLoginResult(ok=False, message=message, code=exc.code)

        self.password = ""
        self.session.authenticated = True
        self.session.email = email
        self.session.user_id = user_id
        logger.info("Admin signed in: %s", user_id)
        self.emitter.emit(FormEvent.create(EventType.ADMIN_LOGIN_SUCCEEDED, payload={"userId": user_id}))
        return AdminLoginResult(ok=True)

    def logout(self) -> None:
        self.session.clear()
        self.email = ""
        self.password = ""


class ReplyComposer:
    """Compose-and-send dialog for replying to one submission.

    A reply is a single synchronous attempt: no retry and no queue. On
    success the compose state is cleared; on failure the dialog stays open
    with the message intact.
    """

    def __init__(self, notifier: Notifier, emitter: Optional[EventEmitter] = None) -> None:
        self.notifier = notifier
        self.emitter = emitter or EventEmitter()
        self.submission: Optional[Submission] = None
        self.message = ""
        self.sending = False

    @property
    def is_open(self) -> bool:
        return self.submission is not None

    def open(self, submission: Submission) -> None:
        self.submission = submission
        self.message = ""

    def close(self) -> None:
        self.submission = None
        self.message = ""

    async def send(self) -> bool:
        """Send the reply. Returns False when there is nothing to send.

        Raises:
            ReplyError: If the email could not be sent
        """
        if self.submission is None or not self.message.strip():
            return False

        to = self.submission.email
        self.sending = True
        try:
            await self.notifier.send_reply(to, self.message)
        except Exception as exc:
            logger.error("Error sending reply to %s: %s", to, exc)
            self.emitter.emit(FormEvent.create(EventType.ADMIN_REPLY_FAILED, payload={"to": to, "error": str(exc)}))
            raise ReplyError(cause=exc) from exc
        finally:
            self.sending = False

        self.emitter.emit(FormEvent.create(EventType.ADMIN_REPLY_SENT, payload={"to": to}))
        self.close()
        return True


class AdminConsole:
    """Read, export, delete and reply view over stored submissions.

    Every operation requires an authenticated AdminSession.
    """

    def __init__(
        self,
        session: AdminSession,
        store: SubmissionStore,
        notifier: Notifier,
        emitter: Optional[EventEmitter] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.notifier = notifier
        self.emitter = emitter or EventEmitter()
        self.submissions: List[Submission] = []

    def _require_auth(self) -> None:
        if not self.session.authenticated:
            raise AdminAuthenticationError("Admin login required")

    async def refresh(self) -> List[Submission]:
        """Reload submissions from the store, newest first."""
        self._require_auth()
        self.submissions = await self.store.list()
        return self.submissions

    def search(self, query: str = "", segment: str = "all") -> List[Submission]:
        """Filter loaded submissions by free text and segment.

        The query matches case-insensitively against first name, last name,
        email and location. ``segment="all"`` disables the segment filter.
        """
        self._require_auth()
        needle = query.strip().lower()
        results = []
        for submission in self.submissions:
            if needle and not any(
                needle in value.lower()
                for value in (submission.first_name, submission.last_name, submission.email, submission.location)
            ):
                continue
            if segment != "all" and not submission.has_segment(Segment(segment)):
                continue
            results.append(submission)
        return results

    def stats(self) -> Dict[str, int]:
        self._require_auth()
        return {
            "total": len(self.submissions),
            "artist": sum(1 for s in self.submissions if s.has_segment(Segment.ARTIST)),
            "community": sum(1 for s in self.submissions if s.has_segment(Segment.COMMUNITY)),
        }

    def export_csv(self) -> str:
        self._require_auth()
        return build_export_csv(self.submissions)

    async def delete(self, submission_id: str) -> None:
        self._require_auth()
        await self.store.delete(submission_id)
        self.submissions = [s for s in self.submissions if s.id != submission_id]
        self.emitter.emit(FormEvent.create(EventType.SUBMISSION_DELETED, payload={"submissionId": submission_id}))

    def reply_to(self, submission: Submission) -> ReplyComposer:
        self._require_auth()
        composer = ReplyComposer(self.notifier, self.emitter)
        composer.open(submission)
        return composer


__all__ = [
    "INVALID_CREDENTIALS_MESSAGE",
    "USER_NOT_FOUND_MESSAGE",
    "TOO_MANY_REQUESTS_MESSAGE",
    "LOGIN_FAILED_MESSAGE",
    "LOGIN_ERROR_MESSAGES",
    "login_error_message",
    "AdminSession",
    "AdminLoginResult",
    "AdminSessionGate",
    "ReplyComposer",
    "AdminConsole",
]
