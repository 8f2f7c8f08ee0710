"""HTTP API tests using FastAPI's TestClient.

The app is built around a runtime wired to the fakes from conftest.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from kyozo_waitlist.api import create_app
from kyozo_waitlist.config import Settings
from kyozo_waitlist.errors import StoreError
from kyozo_waitlist.runtime import WaitlistRuntime
from kyozo_waitlist.submission import Submission

from tests.conftest import SARAH, STEP_FIELDS, FakeNotifier


def make_client(runtime: WaitlistRuntime) -> TestClient:
    return TestClient(create_app(settings=Settings(_env_file=None), runtime=runtime))


@pytest.fixture
def client(runtime):
    with make_client(runtime) as test_client:
        yield test_client


class TestSendNotification:
    def test_success(self, client, notifier):
        response = client.post("/api/send-notification", json={"formData": SARAH})
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"id": "email_1"}}
        assert notifier.sent[0].email == "sarah@example.com"

    def test_missing_form_data(self, client):
        response = client.post("/api/send-notification", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Form data is required"}

    def test_provider_error(self, identity, store):
        runtime = WaitlistRuntime(identity, store, FakeNotifier(fail_with="insufficient credits"))
        with make_client(runtime) as client:
            response = client.post("/api/send-notification", json={"formData": SARAH})
        assert response.status_code == 400
        assert response.json() == {"error": "insufficient credits"}

    def test_unexpected_error(self, client):
        response = client.post("/api/send-notification", json={"formData": {"resonanceLevel": "9"}})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_wrong_method(self, client):
        response = client.get("/api/send-notification")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}


class TestSendReply:
    def test_success(self, client, notifier):
        response = client.post("/api/send-reply", json={"to": "sarah@example.com", "message": "<p>Hi</p>"})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert notifier.replies == [("sarah@example.com", "<p>Hi</p>")]

    def test_failure(self, identity, store):
        runtime = WaitlistRuntime(identity, store, FakeNotifier(reply_fail=True))
        with make_client(runtime) as client:
            response = client.post("/api/send-reply", json={"to": "sarah@example.com", "message": "<p>Hi</p>"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to send reply"}


class TestDeleteSubmission:
    def test_success(self, client, runtime):
        submission_id = asyncio.run(runtime.store.create(Submission.from_dict(SARAH)))
        response = client.request("DELETE", "/api/delete-submission", json={"id": submission_id})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Submission deleted successfully"}
        assert asyncio.run(runtime.store.list()) == []

    def test_missing_id(self, client):
        response = client.request("DELETE", "/api/delete-submission", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing submission ID"}

    def test_not_found(self, client):
        response = client.request("DELETE", "/api/delete-submission", json={"id": "nope"})
        assert response.status_code == 404

    def test_store_failure(self, client, runtime, monkeypatch):
        async def broken_delete(submission_id):
            raise StoreError("backend unavailable")

        monkeypatch.setattr(runtime.store, "delete", broken_delete)
        response = client.request("DELETE", "/api/delete-submission", json={"id": "doc1"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to delete submission", "details": "backend unavailable"}

    def test_wrong_method(self, client):
        response = client.post("/api/delete-submission", json={"id": "doc1"})
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}


class TestCors:
    def test_preflight(self, client):
        response = client.options(
            "/api/send-notification",
            headers={"Origin": "https://kyozo.com", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        allowed = response.headers["access-control-allow-methods"]
        for method in ("GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"):
            assert method in allowed


class TestGates:
    def test_passcode(self, client):
        assert client.post("/api/passcode", json={"passcode": " kyozo2026 "}).json() == {"success": True}
        response = client.post("/api/passcode", json={"passcode": "guess"})
        assert response.json() == {"success": False, "error": "Invalid passcode. Please check and try again."}

    def test_admin_login_failure(self, client):
        response = client.post("/api/admin/login", json={"email": "will@kyozo.com", "password": "x"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password. Please try again."}

    def test_admin_login_success(self, client, identity):
        identity.accounts["will@kyozo.com"] = "secret"
        response = client.post("/api/admin/login", json={"email": "will@kyozo.com", "password": "secret"})
        assert response.status_code == 200
        assert response.json() == {"success": True}


class TestFormSessions:
    def test_validation_errors_keep_step(self, client):
        session_id = client.post("/api/sessions").json()["sessionId"]
        body = client.post(f"/api/sessions/{session_id}/advance").json()
        assert body["ok"] is False
        assert body["state"] == "step_1"
        assert body["errors"]["email"] == "Please enter your email"
        assert body["session"]["currentStep"] == 1

    def test_full_walk_through(self, client, store):
        created = client.post("/api/sessions")
        assert created.status_code == 201
        session_id = created.json()["sessionId"]

        for step in range(1, 7):
            fields = {name: SARAH[name] for name in STEP_FIELDS[step]}
            patched = client.patch(f"/api/sessions/{session_id}/fields", json={"fields": fields})
            assert patched.status_code == 200
            body = client.post(f"/api/sessions/{session_id}/advance").json()
            assert body["ok"] is True, body

        assert body["state"] == "submitted"
        assert body["submissionId"]
        assert store.write_count == 1
        assert client.get(f"/api/sessions/{session_id}").status_code == 404

    def test_retreat_keeps_values(self, client):
        session_id = client.post("/api/sessions").json()["sessionId"]
        fields = {name: SARAH[name] for name in STEP_FIELDS[1]}
        client.patch(f"/api/sessions/{session_id}/fields", json={"fields": fields})
        client.post(f"/api/sessions/{session_id}/advance")
        body = client.post(f"/api/sessions/{session_id}/retreat").json()
        assert body["currentStep"] == 1
        assert body["direction"] == "backward"
        assert body["formData"]["firstName"] == "Sarah"

    def test_bad_field_value(self, client):
        session_id = client.post("/api/sessions").json()["sessionId"]
        response = client.patch(f"/api/sessions/{session_id}/fields", json={"fields": {"resonanceLevel": "7"}})
        assert response.status_code == 400

    def test_rejected_batch_changes_nothing(self, client):
        session_id = client.post("/api/sessions").json()["sessionId"]
        client.patch(f"/api/sessions/{session_id}/fields", json={"fields": {"firstName": "Sarah"}})
        response = client.patch(
            f"/api/sessions/{session_id}/fields",
            json={"fields": {"firstName": "Eve", "resonanceLevel": "9"}},
        )
        assert response.status_code == 400
        assert client.get(f"/api/sessions/{session_id}").json()["formData"]["firstName"] == "Sarah"

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/fs_missing").status_code == 404
        assert client.post("/api/sessions/fs_missing/advance").status_code == 404

    def test_close_session(self, client, runtime):
        session_id = client.post("/api/sessions").json()["sessionId"]
        assert client.delete(f"/api/sessions/{session_id}").status_code == 204
        assert runtime.open_sessions == 0
