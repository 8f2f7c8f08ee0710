"""Notification adapter: transactional email through Resend.

Two templates exist. A "new submission" email goes to a fixed operational
recipient whenever a submission is stored; a "reply" email carries an
operator-written HTML body to a submitter. Any provider or transport error
becomes a NotificationError.
"""

import html
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import httpx

from kyozo_waitlist.errors import NotificationError
from kyozo_waitlist.submission import Submission

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REPLY_SUBJECT = "Response from Kyozo Team"


class Notifier(Protocol):
    """Transactional email boundary."""

    async def send_new_submission(self, submission: Submission) -> Optional[str]:
        ...

    async def send_reply(self, to: str, message: str) -> Optional[str]:
        ...


def new_submission_subject(submission: Submission) -> str:
    return f"New Waitlist Submission from {submission.first_name} {submission.last_name}"


def render_new_submission_html(submission: Submission, sent_at: Optional[datetime] = None) -> str:
    """HTML body of the operational "new submission" email.

    Every value is escaped; list fields are comma-joined.
    """
    values = submission.form_values()
    sent_at = sent_at or datetime.now(timezone.utc)

    def esc(value: Any) -> str:
        if isinstance(value, list):
            value = ", ".join(value)
        return html.escape(str(value))

    rows = [
        ("Name", f"{esc(values['firstName'])} {esc(values['lastName'])}"),
        ("Email", esc(values["email"])),
        ("Phone", esc(values["phone"])),
        ("Location", esc(values["location"])),
        ("Role Types", esc(values["roleTypes"])),
        ("Creative Work", esc(values["creativeWork"])),
        ("Beta Testing", esc(values["betaTesting"])),
        ("Resonance Level", f"{esc(values['resonanceLevel'])}/5"),
        ("Resonance Reasons", esc(values["resonanceReasons"])),
        ("Community Selections", esc(values["communitySelections"])),
        ("Timestamp", sent_at.isoformat()),
    ]
    lines = ["<h2>New Waitlist Submission</h2>"]
    lines.extend(f"<p><strong>{label}:</strong> {value}</p>" for label, value in rows)
    return "\n".join(lines)


class ResendNotifier:
    """Sends waitlist emails with the Resend HTTP API.

    Args:
        api_key: Resend API key
        recipient: Operational address receiving new-submission emails
        sender: From address of new-submission emails
        reply_sender: From address of admin replies
        client: Optional shared httpx.AsyncClient; one is opened per call otherwise
    """

    def __init__(
        self,
        api_key: str,
        recipient: str = "dev@kyozo.com",
        sender: str = "Kyozo Waitlist <waitlist@contact.kyozo.com>",
        reply_sender: str = "Will from Kyozo <will@kyozo.com>",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        api_url: str = RESEND_API_URL,
    ) -> None:
        self.api_key = api_key
        self.recipient = recipient
        self.sender = sender
        self.reply_sender = reply_sender
        self._client = client
        self._timeout = timeout
        self._api_url = api_url

    async def send_new_submission(self, submission: Submission) -> Optional[str]:
        logger.info(
            "Sending new submission email for %s %s to %s",
            submission.first_name, submission.last_name, self.recipient,
        )
        return await self._send({
            "from": self.sender,
            "to": [self.recipient],
            "subject": new_submission_subject(submission),
            "html": render_new_submission_html(submission),
        })

    async def send_reply(self, to: str, message: str) -> Optional[str]:
        logger.info("Sending reply email to %s", to)
        return await self._send({
            "from": self.reply_sender,
            "to": recipients(to),
            "subject": REPLY_SUBJECT,
            "html": message,
        })

    async def _send(self, payload: Dict[str, Any]) -> Optional[str]:
        if self._client is not None:
            return await self._post(self._client, payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, payload)

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> Optional[str]:
        try:
            response = await client.post(
                self._api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email request failed: {exc}") from exc

        if response.is_error:
            raise NotificationError(_provider_message(response))

        email_id = response.json().get("id")
        logger.info("Email sent, id=%s", email_id)
        return email_id


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Email provider returned HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Email provider returned HTTP {response.status_code}"


def recipients(value: Any) -> List[str]:
    """Normalize a ``to`` value (string or list) into a list of addresses."""
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value or []]


__all__ = [
    "RESEND_API_URL",
    "REPLY_SUBJECT",
    "Notifier",
    "ResendNotifier",
    "new_submission_subject",
    "render_new_submission_html",
]
