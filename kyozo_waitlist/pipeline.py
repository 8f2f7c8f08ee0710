"""Submission pipeline: identity, persistence, then best-effort notification.

The pipeline runs strictly in order for one frozen submission:

1. Identity acquisition. Reuse the caller's identity token or ask the
   identity provider for an anonymous one. Failure aborts the attempt.
2. Persistence. Write the submission, stamped with the identity token, to
   the store exactly once. Failure aborts the attempt.
3. Notification. Email the operational recipient about the new submission.
   This runs as a detached task that ``run`` never awaits; its outcome is
   only recorded in the NotificationLog. The stored submission is the
   source of truth, so a failed email never undoes or hides a successful
   write.

Usage:
    >>> pipeline = SubmissionPipeline(identity, store, notifier)  # doctest: +SKIP
    >>> result = await pipeline.run(session.submission.freeze())  # doctest: +SKIP
    >>> result.submission_id  # doctest: +SKIP
    'abc123'
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from kyozo_waitlist.adapters.email import Notifier
from kyozo_waitlist.adapters.identity import IdentityProvider
from kyozo_waitlist.adapters.store import SubmissionStore
from kyozo_waitlist.errors import IdentityAcquisitionError, PersistenceError
from kyozo_waitlist.events import EventEmitter, FormEvent
from kyozo_waitlist.submission import Submission
from kyozo_waitlist.types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationAttempt:
    """Outcome of one "new submission" email attempt."""
    submission_id: str
    ok: bool
    error: Optional[str] = None
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "submissionId": self.submission_id,
            "ok": self.ok,
            "error": self.error,
            "ts": self.ts.isoformat(),
        }


class NotificationLog:
    """Append-only record of notification attempts."""

    def __init__(self) -> None:
        self.attempts: List[NotificationAttempt] = []

    def record(self, attempt: NotificationAttempt) -> None:
        self.attempts.append(attempt)

    def failures(self) -> List[NotificationAttempt]:
        return [a for a in self.attempts if not a.ok]

    def for_submission(self, submission_id: str) -> List[NotificationAttempt]:
        return [a for a in self.attempts if a.submission_id == submission_id]

    def __len__(self) -> int:
        return len(self.attempts)


@dataclass(frozen=True)
class PipelineResult:
    """Successful pipeline run: the record is stored."""
    submission_id: str
    user_id: str


class SubmissionPipeline:
    """Runs identity acquisition, persistence and notification for a submission.

    Attributes:
        identity: Identity provider issuing anonymous identity tokens
        store: Submission store
        notifier: Transactional email adapter
        notifications: Log of every notification attempt
    """

    def __init__(
        self,
        identity: IdentityProvider,
        store: SubmissionStore,
        notifier: Notifier,
        emitter: Optional[EventEmitter] = None,
        notifications: Optional[NotificationLog] = None,
    ) -> None:
        self.identity = identity
        self.store = store
        self.notifier = notifier
        self.emitter = emitter or EventEmitter()
        self.notifications = notifications or NotificationLog()
        self._pending: Set["asyncio.Task[None]"] = set()

    async def run(
        self,
        submission: Submission,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> PipelineResult:
        """Store ``submission`` and schedule its notification.

        Args:
            submission: Frozen submission with every step's data attached
            user_id: Identity token from an earlier attempt, if any
            session_id: Form session the submission came from, for events

        Raises:
            IdentityAcquisitionError: The identity provider failed
            PersistenceError: The store rejected the write
        """
        self._emit(EventType.SUBMISSION_STARTED, session_id)

        if not user_id:
            try:
                user_id = await self.identity.sign_in_anonymously()
            except Exception as exc:
                logger.error("Failed to authenticate: %s", exc)
                self._emit(EventType.SUBMISSION_FAILED, session_id, {"stage": "identity", "error": str(exc)})
                raise IdentityAcquisitionError(cause=exc) from exc
            self._emit(EventType.IDENTITY_ACQUIRED, session_id, {"userId": user_id})

        record = submission.freeze()
        record.assign_identity(user_id)

        try:
            submission_id = await self.store.create(record)
        except Exception as exc:
            logger.error("Error submitting form: %s", exc)
            self._emit(EventType.SUBMISSION_FAILED, session_id, {"stage": "persistence", "error": str(exc)})
            raise PersistenceError(cause=exc, user_id=user_id) from exc

        record.id = submission_id
        logger.info("Submission saved with ID: %s", submission_id)
        self._emit(EventType.SUBMISSION_PERSISTED, session_id, {"submissionId": submission_id})

        self._schedule_notification(record, submission_id, session_id)
        return PipelineResult(submission_id=submission_id, user_id=user_id)

    def _schedule_notification(self, record: Submission, submission_id: str, session_id: Optional[str]) -> None:
        task = asyncio.get_running_loop().create_task(self._notify(record, submission_id, session_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, record: Submission, submission_id: str, session_id: Optional[str]) -> None:
        try:
            await self.notifier.send_new_submission(record)
        except Exception as exc:
            # Recorded only: the stored submission stands either way
            logger.warning("Failed to send email for %s: %s", submission_id, exc)
            self.notifications.record(NotificationAttempt(submission_id=submission_id, ok=False, error=str(exc)))
            self._emit(EventType.NOTIFICATION_FAILED, session_id, {"submissionId": submission_id, "error": str(exc)})
            return
        logger.info("Email notification sent for %s", submission_id)
        self.notifications.record(NotificationAttempt(submission_id=submission_id, ok=True))
        self._emit(EventType.NOTIFICATION_SENT, session_id, {"submissionId": submission_id})

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def wait_for_notifications(self) -> None:
        """Wait until every scheduled notification has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _emit(self, event_type: EventType, session_id: Optional[str], payload: Optional[Dict[str, Any]] = None) -> None:
        self.emitter.emit(FormEvent.create(event_type, session_id, payload))


__all__ = [
    "NotificationAttempt",
    "NotificationLog",
    "PipelineResult",
    "SubmissionPipeline",
]
