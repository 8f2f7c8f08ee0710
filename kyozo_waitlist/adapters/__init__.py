"""Boundaries to the external services the waitlist depends on.

- store: the document store holding submissions
- identity: the identity provider (anonymous sessions, admin login)
- email: the transactional email provider
"""

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

__all__ = [
    "Notifier",
    "ResendNotifier",
    "IdentityProvider",
    "LocalIdentityProvider",
    "FirebaseIdentityProvider",
    "SubmissionStore",
    "InMemorySubmissionStore",
    "FirestoreSubmissionStore",
]
