"""Test suite for the Kyozo waitlist.

This package contains tests for:
- Per-step validation rules
- Form state machine (navigation, single-flight submit, retry)
- Submission pipeline (ordering, partial failure)
- Admin login, console, CSV export and replies
- Store, identity and email adapters (mocked transports)
- HTTP API and end-to-end scenarios
"""
