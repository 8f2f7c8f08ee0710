"""WaitlistRuntime: wires adapters, pipeline, form sessions and admin access.

The runtime owns the registry of open form sessions. A session is created
when a visitor opens the form and removed when its submission is stored, the
visitor closes it, or it sits idle longer than ``session_ttl`` seconds;
nothing about a session outlives it.

Usage:
    >>> from kyozo_waitlist.adapters import InMemorySubmissionStore, LocalIdentityProvider
    >>> runtime = WaitlistRuntime(
    ...     identity=LocalIdentityProvider(),
    ...     store=InMemorySubmissionStore(),
    ...     notifier=notifier,
    ... )  # doctest: +SKIP
    >>> session = runtime.open_session()  # doctest: +SKIP
    >>> session.current_step  # doctest: +SKIP
    1
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, Optional

from kyozo_waitlist.adapters.email import Notifier, ResendNotifier
from kyozo_waitlist.adapters.identity import (
    FirebaseIdentityProvider,
    IdentityProvider,
    LocalIdentityProvider,
)
from kyozo_waitlist.adapters.store import (
    FirestoreSubmissionStore,
    InMemorySubmissionStore,
    SubmissionStore,
)
from kyozo_waitlist.admin import AdminConsole, AdminSession, AdminSessionGate
from kyozo_waitlist.config import Settings
from kyozo_waitlist.errors import SessionNotFoundError
from kyozo_waitlist.events import EventEmitter, FormEvent, log_event
from kyozo_waitlist.passcode import PasscodeGate
from kyozo_waitlist.pipeline import NotificationLog, SubmissionPipeline
from kyozo_waitlist.state_machine import AdvanceResult, FormSession
from kyozo_waitlist.types import EventType

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 30 * 60


class WaitlistRuntime:
    """Coordinates form sessions, the submission pipeline and admin access.

    Attributes:
        identity: Identity provider adapter
        store: Submission store adapter
        notifier: Email adapter
        pipeline: Submission pipeline shared by all sessions
        emitter: Event emitter receiving every session and pipeline event
        passcode_gate: Static gate in front of the form
        session_ttl: Seconds a session may sit untouched before it is discarded
    """

    def __init__(
        self,
        identity: IdentityProvider,
        store: SubmissionStore,
        notifier: Notifier,
        passcode: str = "KYOZO2026",
        emitter: Optional[EventEmitter] = None,
        session_ttl: float = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.identity = identity
        self.store = store
        self.notifier = notifier
        self.emitter = emitter or EventEmitter()
        self.pipeline = SubmissionPipeline(identity, store, notifier, emitter=self.emitter)
        self.passcode_gate = PasscodeGate(passcode)
        self.session_ttl = session_ttl
        self._clock = clock
        self._sessions: Dict[str, FormSession] = {}
        self._touched: Dict[str, float] = {}

    @property
    def notifications(self) -> NotificationLog:
        return self.pipeline.notifications

    def open_session(self) -> FormSession:
        """Create a form session on the first step with an empty submission."""
        self.expire_idle()
        session_id = f"fs_{uuid.uuid4().hex[:16]}"
        session = FormSession(session_id=session_id, pipeline=self.pipeline, emitter=self.emitter)
        self._sessions[session_id] = session
        self._touched[session_id] = self._clock()
        self.emitter.emit(FormEvent.create(EventType.SESSION_CREATED, session_id))
        return session

    def get_session(self, session_id: str) -> FormSession:
        """Raises SessionNotFoundError for unknown, discarded or expired sessions."""
        self.expire_idle()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        self._touched[session_id] = self._clock()
        return session

    def close_session(self, session_id: str) -> None:
        """Discard a session. Unknown ids are ignored."""
        self._sessions.pop(session_id, None)
        self._touched.pop(session_id, None)

    def expire_idle(self) -> int:
        """Discard sessions idle longer than ``session_ttl``; returns how many.

        A session with a submission in flight is never expired.
        """
        cutoff = self._clock() - self.session_ttl
        expired = [
            session_id
            for session_id, touched in self._touched.items()
            if touched < cutoff and not self._sessions[session_id].in_flight
        ]
        for session_id in expired:
            self.close_session(session_id)
            self.emitter.emit(FormEvent.create(EventType.SESSION_EXPIRED, session_id))
        if expired:
            logger.info("Expired %d idle form session(s)", len(expired))
        return len(expired)

    @property
    def open_sessions(self) -> int:
        return len(self._sessions)

    def update_fields(self, session_id: str, fields: Dict[str, Any]) -> FormSession:
        """Apply a batch of field values; a rejected value leaves the session unchanged."""
        session = self.get_session(session_id)
        session.update_fields(fields)
        return session

    async def advance(self, session_id: str) -> AdvanceResult:
        """Advance a session; a submitted session is discarded afterwards."""
        session = self.get_session(session_id)
        result = await session.advance()
        if result.submitted:
            self.close_session(session_id)
        return result

    def retreat(self, session_id: str) -> FormSession:
        session = self.get_session(session_id)
        session.retreat()
        return session

    def admin_gate(self, session: Optional[AdminSession] = None) -> AdminSessionGate:
        return AdminSessionGate(self.identity, session=session, emitter=self.emitter)

    def admin_console(self, session: AdminSession) -> AdminConsole:
        return AdminConsole(session, self.store, self.notifier, emitter=self.emitter)


def build_runtime(settings: Settings) -> WaitlistRuntime:
    """Build a runtime with the adapters the settings configure.

    Without Firestore credentials submissions are kept in memory; without a
    web API key anonymous ids are generated locally and admin login is off.
    """
    if settings.firestore_configured:
        store: SubmissionStore = FirestoreSubmissionStore.from_settings(settings)
    else:
        logger.warning("Firestore credentials not configured; using in-memory submission store")
        store = InMemorySubmissionStore()

    if settings.firebase_web_api_key:
        identity: IdentityProvider = FirebaseIdentityProvider(
            settings.firebase_web_api_key, timeout=settings.http_timeout_seconds
        )
    else:
        logger.warning("FIREBASE_WEB_API_KEY not set; using local identity provider")
        identity = LocalIdentityProvider()

    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set; notification emails will fail")
    notifier = ResendNotifier(
        settings.resend_api_key or "",
        recipient=settings.notification_recipient,
        sender=settings.notification_sender,
        reply_sender=settings.reply_sender,
        timeout=settings.http_timeout_seconds,
    )

    emitter = EventEmitter()
    emitter.on_any(log_event)
    return WaitlistRuntime(
        identity,
        store,
        notifier,
        passcode=settings.waitlist_passcode,
        emitter=emitter,
        session_ttl=settings.session_ttl_seconds,
    )


__all__ = [
    "WaitlistRuntime",
    "build_runtime",
]
