"""Tests for the admin login gate, admin console and reply composer."""

import asyncio
import csv
import io
from datetime import datetime, timezone

import pytest

from kyozo_waitlist.admin import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_FAILED_MESSAGE,
    TOO_MANY_REQUESTS_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
    AdminConsole,
    AdminSession,
    AdminSessionGate,
    login_error_message,
)
from kyozo_waitlist.errors import AdminAuthenticationError, ReplyError
from kyozo_waitlist.export import HEADER
from kyozo_waitlist.submission import ArtistAnswers, CommunityAnswers, Submission
from kyozo_waitlist.types import EventType

from tests.conftest import SARAH, FakeNotifier


@pytest.fixture
def admin_identity(identity):
    identity.accounts["will@kyozo.com"] = "correct horse"
    return identity


class TestLoginErrorMessages:
    @pytest.mark.parametrize("code", ["INVALID_LOGIN_CREDENTIALS", "INVALID_PASSWORD", "auth/wrong-password"])
    def test_bad_credentials(self, code):
        assert login_error_message(code) == INVALID_CREDENTIALS_MESSAGE

    @pytest.mark.parametrize("code", ["EMAIL_NOT_FOUND", "auth/user-not-found"])
    def test_unknown_user(self, code):
        assert login_error_message(code) == USER_NOT_FOUND_MESSAGE

    @pytest.mark.parametrize("code", ["TOO_MANY_ATTEMPTS_TRY_LATER", "auth/too-many-requests"])
    def test_rate_limited(self, code):
        assert login_error_message(code) == TOO_MANY_REQUESTS_MESSAGE

    def test_anything_else(self):
        assert login_error_message("NETWORK_REQUEST_FAILED") == LOGIN_FAILED_MESSAGE


class TestAdminSessionGate:
    def test_wrong_password(self, admin_identity, emitter, recorder):
        gate = AdminSessionGate(admin_identity, emitter=emitter)
        result = asyncio.run(gate.login("will@kyozo.com", "wrong"))
        assert not result.ok
        assert result.message == "Invalid email or password. Please try again."
        assert result.to_dict() == {"success": False, "error": result.message}
        assert not gate.session.authenticated
        assert gate.email == "will@kyozo.com"
        assert gate.password == ""
        assert recorder.of_type(EventType.ADMIN_LOGIN_FAILED)[0].payload == {"code": "INVALID_LOGIN_CREDENTIALS"}

    def test_success(self, admin_identity):
        gate = AdminSessionGate(admin_identity)
        result = asyncio.run(gate.login("will@kyozo.com", "correct horse"))
        assert result.ok
        assert gate.session.authenticated
        assert gate.session.email == "will@kyozo.com"
        assert gate.session.user_id == "admin_will"
        assert gate.password == ""

    def test_rate_limited_by_provider(self, admin_identity):
        admin_identity.login_error = "TOO_MANY_ATTEMPTS_TRY_LATER"
        gate = AdminSessionGate(admin_identity)
        result = asyncio.run(gate.login("will@kyozo.com", "guess"))
        assert result.message == TOO_MANY_REQUESTS_MESSAGE

    def test_failed_login_clears_previous_session(self, admin_identity):
        session = AdminSession(authenticated=True, email="old@kyozo.com", user_id="u1")
        gate = AdminSessionGate(admin_identity, session=session)
        asyncio.run(gate.login("will@kyozo.com", "nope"))
        assert not session.authenticated
        assert session.user_id is None

    def test_logout(self, admin_identity):
        gate = AdminSessionGate(admin_identity)
        asyncio.run(gate.login("will@kyozo.com", "correct horse"))
        gate.logout()
        assert not gate.session.authenticated
        assert gate.email == ""


@pytest.fixture
def authed():
    return AdminSession(authenticated=True, email="will@kyozo.com", user_id="admin_will")


@pytest.fixture
def console(authed, store, notifier, emitter):
    first = Submission.from_dict(SARAH)
    first.segments = [ArtistAnswers(q1="Producer")]
    asyncio.run(store.create(first))
    second = Submission.from_dict({**SARAH, "firstName": "Marco", "lastName": "Rossi",
                                   "email": "marco@studio.it", "location": "Milan"})
    second.segments = [CommunityAnswers(q1="Collective")]
    asyncio.run(store.create(second))
    console = AdminConsole(authed, store, notifier, emitter=emitter)
    asyncio.run(console.refresh())
    return console


class TestAdminConsole:
    def test_requires_authentication(self, store, notifier):
        console = AdminConsole(AdminSession(), store, notifier)
        with pytest.raises(AdminAuthenticationError):
            asyncio.run(console.refresh())
        with pytest.raises(AdminAuthenticationError):
            console.export_csv()

    def test_refresh_newest_first(self, console):
        assert [s.first_name for s in console.submissions] == ["Marco", "Sarah"]

    def test_search_is_case_insensitive(self, console):
        assert [s.first_name for s in console.search("MILAN")] == ["Marco"]
        assert [s.first_name for s in console.search("sarah@")] == ["Sarah"]
        assert len(console.search("")) == 2

    def test_search_by_segment(self, console):
        assert [s.first_name for s in console.search(segment="artist")] == ["Sarah"]
        assert [s.first_name for s in console.search("chen", segment="community")] == []

    def test_stats(self, console):
        assert console.stats() == {"total": 2, "artist": 1, "community": 1}

    def test_export_csv(self, console):
        rows = list(csv.reader(io.StringIO(console.export_csv())))
        assert rows[0] == HEADER
        assert len(rows) == 3
        marco = dict(zip(HEADER, rows[1]))
        assert marco["Email"] == "marco@studio.it"
        assert marco["Segments"] == "community"
        assert marco["Community Q1"] == "Collective"
        assert marco["Resonance Reasons"] == "control; community"

    def test_refresh_lists_legacy_records(self, authed, store, notifier):
        asyncio.run(store.create(Submission.from_dict(SARAH)))
        legacy = {k: v for k, v in SARAH.items() if k != "betaTesting"}
        legacy.update(firstName="Ana", productFeedbackSurvey="Maybe later", segments=["investor"])
        store._records["legacy1"] = (legacy, datetime(2024, 1, 1, tzinfo=timezone.utc))

        console = AdminConsole(authed, store, notifier)
        asyncio.run(console.refresh())

        assert [s.first_name for s in console.submissions] == ["Sarah", "Ana"]
        assert console.submissions[1].beta_testing is None
        assert console.stats()["total"] == 2

    def test_delete(self, console, store, recorder):
        target = console.submissions[0].id
        asyncio.run(console.delete(target))
        assert [s.first_name for s in console.submissions] == ["Sarah"]
        assert len(asyncio.run(store.list())) == 1
        assert recorder.of_type(EventType.SUBMISSION_DELETED)[0].payload == {"submissionId": target}


class TestReplyComposer:
    def test_blank_message_is_ignored(self, console, notifier):
        composer = console.reply_to(console.submissions[0])
        composer.message = "   "
        assert asyncio.run(composer.send()) is False
        assert notifier.replies == []
        assert composer.is_open

    def test_success_clears_compose_state(self, console, notifier):
        composer = console.reply_to(console.submissions[1])
        composer.message = "<p>Welcome aboard</p>"
        assert asyncio.run(composer.send()) is True
        assert notifier.replies == [("sarah@example.com", "<p>Welcome aboard</p>")]
        assert not composer.is_open
        assert composer.message == ""

    def test_failure_keeps_message(self, authed, store, emitter, recorder):
        notifier = FakeNotifier(reply_fail=True)
        console = AdminConsole(authed, store, notifier, emitter=emitter)
        composer = console.reply_to(Submission.from_dict(SARAH))
        composer.message = "<p>Hello</p>"
        with pytest.raises(ReplyError) as exc_info:
            asyncio.run(composer.send())
        assert str(exc_info.value) == "Failed to send reply. Please try again."
        assert composer.is_open
        assert composer.message == "<p>Hello</p>"
        assert not composer.sending
        assert recorder.of_type(EventType.ADMIN_REPLY_FAILED)
