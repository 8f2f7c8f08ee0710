"""Tests for the submission pipeline.

Covers the ordering of identity, persistence and notification, and the
rule that a failed notification never undoes or hides a stored submission.
"""

import asyncio

import pytest

from kyozo_waitlist.errors import IdentityAcquisitionError, PersistenceError
from kyozo_waitlist.pipeline import NotificationAttempt, NotificationLog, SubmissionPipeline
from kyozo_waitlist.submission import Submission
from kyozo_waitlist.types import EventType

from tests.conftest import SARAH, FailingStore, FakeIdentity, FakeNotifier


def sarah() -> Submission:
    return Submission.from_dict(SARAH)


class TestHappyPath:
    def test_stores_once_and_notifies(self, pipeline, store, notifier):
        async def scenario():
            result = await pipeline.run(sarah())
            await pipeline.wait_for_notifications()
            return result, await store.list()

        result, stored = asyncio.run(scenario())
        assert result.user_id == "abc123"
        assert store.write_count == 1
        assert [s.id for s in stored] == [result.submission_id]
        assert stored[0].user_id == "abc123"
        assert len(notifier.sent) == 1
        attempts = pipeline.notifications.for_submission(result.submission_id)
        assert [a.ok for a in attempts] == [True]

    def test_existing_identity_is_reused(self, pipeline, identity, store):
        async def scenario():
            result = await pipeline.run(sarah(), user_id="returning")
            await pipeline.wait_for_notifications()
            return result

        result = asyncio.run(scenario())
        assert result.user_id == "returning"
        assert identity.anonymous_calls == 0

    def test_caller_submission_is_not_mutated(self, pipeline):
        submission = sarah()

        async def scenario():
            await pipeline.run(submission)
            await pipeline.wait_for_notifications()

        asyncio.run(scenario())
        assert submission.user_id is None
        assert submission.id is None

    def test_event_order(self, pipeline, recorder):
        async def scenario():
            await pipeline.run(sarah(), session_id="fs_9")
            await pipeline.wait_for_notifications()

        asyncio.run(scenario())
        assert [e.type for e in recorder.events] == [
            EventType.SUBMISSION_STARTED,
            EventType.IDENTITY_ACQUIRED,
            EventType.SUBMISSION_PERSISTED,
            EventType.NOTIFICATION_SENT,
        ]
        assert all(e.session_id == "fs_9" for e in recorder.events)


class TestNotificationFailure:
    """The record is stored even when the email provider refuses."""

    def test_partial_failure_still_succeeds(self, identity, store, recorder, emitter):
        notifier = FakeNotifier(fail_with="insufficient credits")
        pipeline = SubmissionPipeline(identity, store, notifier, emitter=emitter)

        async def scenario():
            result = await pipeline.run(sarah())
            await pipeline.wait_for_notifications()
            return result

        result = asyncio.run(scenario())
        assert result.submission_id
        assert store.write_count == 1
        failures = pipeline.notifications.failures()
        assert len(failures) == 1
        assert failures[0].submission_id == result.submission_id
        assert failures[0].error == "insufficient credits"
        assert recorder.of_type(EventType.NOTIFICATION_FAILED)
        assert not recorder.of_type(EventType.SUBMISSION_FAILED)

    def test_run_returns_before_notification(self, identity, store):
        notifier = FakeNotifier()
        pipeline = SubmissionPipeline(identity, store, notifier)

        async def scenario():
            await pipeline.run(sarah())
            pending = pipeline.pending_notifications
            await pipeline.wait_for_notifications()
            return pending

        assert asyncio.run(scenario()) == 1
        assert pipeline.pending_notifications == 0
        assert len(notifier.sent) == 1


class TestFatalFailures:
    def test_identity_failure_writes_nothing(self, store, notifier, recorder, emitter):
        pipeline = SubmissionPipeline(FakeIdentity(fail=True), store, notifier, emitter=emitter)
        with pytest.raises(IdentityAcquisitionError) as exc_info:
            asyncio.run(pipeline.run(sarah()))
        assert str(exc_info.value) == "Authentication failed. Please try again."
        assert exc_info.value.cause is not None
        assert store.write_count == 0
        assert notifier.sent == []
        assert recorder.of_type(EventType.SUBMISSION_FAILED)[0].payload["stage"] == "identity"

    def test_persistence_failure_carries_identity(self, identity, notifier):
        store = FailingStore()
        pipeline = SubmissionPipeline(identity, store, notifier)
        with pytest.raises(PersistenceError) as exc_info:
            asyncio.run(pipeline.run(sarah()))
        assert str(exc_info.value) == "Failed to submit form. Please try again."
        assert exc_info.value.user_id == "abc123"
        assert notifier.sent == []
        assert len(pipeline.notifications) == 0


class TestNotificationLog:
    def test_record_and_query(self):
        log = NotificationLog()
        log.record(NotificationAttempt(submission_id="a", ok=True))
        log.record(NotificationAttempt(submission_id="b", ok=False, error="boom"))
        assert len(log) == 2
        assert [a.submission_id for a in log.failures()] == ["b"]
        assert log.for_submission("a")[0].to_dict()["ok"] is True
