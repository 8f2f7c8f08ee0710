"""Shared fakes and fixtures for the waitlist tests.

The fakes stand in for the three adapter boundaries (identity provider,
submission store, email) so that the form, pipeline and admin flows can be
exercised without network access.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from kyozo_waitlist.adapters.store import InMemorySubmissionStore
from kyozo_waitlist.errors import IdentityProviderError, NotificationError, StoreError
from kyozo_waitlist.events import EventEmitter, EventRecorder
from kyozo_waitlist.pipeline import SubmissionPipeline
from kyozo_waitlist.runtime import WaitlistRuntime
from kyozo_waitlist.state_machine import FormSession
from kyozo_waitlist.submission import Submission


SARAH = {
    "firstName": "Sarah",
    "lastName": "Chen",
    "email": "sarah@example.com",
    "phone": "+1 555 0100",
    "location": "Los Angeles",
    "roleTypes": ["artist-musician-performer"],
    "creativeWork": "Experimental electronic music and live visuals",
    "betaTesting": "yes",
    "resonanceLevel": "5",
    "resonanceReasons": ["control", "community"],
    "communitySelections": ["asia"],
}


class FakeIdentity:
    """Identity provider returning a fixed anonymous id.

    ``accounts`` maps admin email -> password; any other pair fails with
    ``login_error``.
    """

    def __init__(self, user_id: str = "abc123", fail: bool = False) -> None:
        self.user_id = user_id
        self.fail = fail
        self.anonymous_calls = 0
        self.accounts: Dict[str, str] = {}
        self.login_error = "INVALID_LOGIN_CREDENTIALS"

    async def sign_in_anonymously(self) -> str:
        self.anonymous_calls += 1
        if self.fail:
            raise IdentityProviderError("NETWORK_REQUEST_FAILED")
        return self.user_id

    async def sign_in_with_password(self, email: str, password: str) -> str:
        if self.accounts.get(email) == password:
            return f"admin_{email.split('@')[0]}"
        raise IdentityProviderError(self.login_error)


class FakeNotifier:
    def __init__(self, fail_with: Optional[str] = None, reply_fail: bool = False) -> None:
        self.fail_with = fail_with
        self.reply_fail = reply_fail
        self.sent: List[Submission] = []
        self.replies: List[Tuple[str, str]] = []

    async def send_new_submission(self, submission: Submission) -> Optional[str]:
        if self.fail_with:
            raise NotificationError(self.fail_with)
        self.sent.append(submission)
        return f"email_{len(self.sent)}"

    async def send_reply(self, to: str, message: str) -> Optional[str]:
        if self.reply_fail:
            raise NotificationError("provider unavailable")
        self.replies.append((to, message))
        return f"reply_{len(self.replies)}"


class FailingStore(InMemorySubmissionStore):
    """In-memory store whose writes fail while ``fail`` is set."""

    def __init__(self, fail: bool = True) -> None:
        super().__init__()
        self.fail = fail
        self.attempts = 0

    async def create(self, submission: Submission) -> str:
        self.attempts += 1
        if self.fail:
            raise StoreError("permission denied")
        return await super().create(submission)


class GatedStore(InMemorySubmissionStore):
    """In-memory store whose writes wait until ``gate`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def create(self, submission: Submission) -> str:
        self.entered.set()
        await self.gate.wait()
        return await super().create(submission)


def fill_step(session: FormSession, *names: str) -> None:
    for name in names:
        session.update_field(name, SARAH[name])


STEP_FIELDS = {
    1: ("firstName", "lastName", "email"),
    2: ("phone", "location", "roleTypes"),
    3: ("creativeWork",),
    4: ("betaTesting",),
    5: ("resonanceLevel", "resonanceReasons"),
    6: ("communitySelections",),
}


async def walk_to_last_step(session: FormSession) -> None:
    """Fill steps 1-5 with Sarah's answers and advance to step 6."""
    for step in range(1, 6):
        fill_step(session, *STEP_FIELDS[step])
        result = await session.advance()
        assert result.ok, result.errors
    fill_step(session, *STEP_FIELDS[6])


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def store():
    return InMemorySubmissionStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture
def recorder(emitter):
    return EventRecorder(emitter)


@pytest.fixture
def pipeline(identity, store, notifier, emitter):
    return SubmissionPipeline(identity, store, notifier, emitter=emitter)


@pytest.fixture
def runtime(identity, store, notifier, emitter):
    return WaitlistRuntime(identity, store, notifier, emitter=emitter)
