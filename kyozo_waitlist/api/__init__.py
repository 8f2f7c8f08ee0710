"""HTTP surface of the waitlist: email endpoints, form sessions and gates.

``app`` is built from the environment at import time, so
``uvicorn kyozo_waitlist.api:app`` serves it directly. Tests call
``create_app`` with a runtime wired to fakes instead.
"""

from kyozo_waitlist.api.app import create_app

app = create_app()

__all__ = ["app", "create_app"]
