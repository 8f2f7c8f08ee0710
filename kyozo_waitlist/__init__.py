"""Kyozo waitlist: multi-step signup form, submission pipeline and admin view.

The package provides:
- A six-step form state machine with per-step validation
- A submission pipeline (anonymous identity, one store write, best-effort email)
- An admin view gated by identity-provider login (search, CSV export, delete, reply)
- Adapters for Firestore, the Firebase identity REST API and Resend
- A FastAPI app exposing all of the above

Basic usage:
    >>> from kyozo_waitlist.config import Settings
    >>> from kyozo_waitlist.runtime import build_runtime
    >>> runtime = build_runtime(Settings())  # doctest: +SKIP
    >>> session = runtime.open_session()  # doctest: +SKIP
    >>> session.update_field("firstName", "Sarah")  # doctest: +SKIP
    >>> print(session.state.value)  # doctest: +SKIP
    step_1
"""

__version__ = "0.1.0"
__author__ = "Kyozo Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from kyozo_waitlist.runtime import WaitlistRuntime, build_runtime
from kyozo_waitlist.state_machine import FormSession
from kyozo_waitlist.submission import Submission

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "WaitlistRuntime",
    "build_runtime",
    "FormSession",
    "Submission",
]
