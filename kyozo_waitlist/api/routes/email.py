"""Email endpoints: new-submission notification and admin reply.

Both are thin wrappers over the runtime's notifier. The response shapes are
the ones the web client already reads: ``{"success": true}`` or
``{"error": "..."}``.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kyozo_waitlist.api.deps import get_runtime
from kyozo_waitlist.errors import NotificationError
from kyozo_waitlist.runtime import WaitlistRuntime
from kyozo_waitlist.submission import Submission

logger = logging.getLogger(__name__)

router = APIRouter()


class NotificationRequest(BaseModel):
    formData: Optional[Dict[str, Any]] = None


class ReplyRequest(BaseModel):
    to: Any = None
    message: Optional[str] = None


@router.post("/api/send-notification")
async def send_notification(
    payload: Optional[NotificationRequest] = None,
    runtime: WaitlistRuntime = Depends(get_runtime),
) -> JSONResponse:
    if payload is None or not payload.formData:
        logger.error("Notification request without form data")
        return JSONResponse({"error": "Form data is required"}, status_code=400)

    try:
        submission = Submission.from_dict(payload.formData)
        email_id = await runtime.notifier.send_new_submission(submission)
    except NotificationError as exc:
        logger.error("Email provider error: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception:
        logger.exception("Unexpected error sending notification")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    return JSONResponse({"success": True, "data": {"id": email_id}})


@router.post("/api/send-reply")
async def send_reply(
    payload: Optional[ReplyRequest] = None,
    runtime: WaitlistRuntime = Depends(get_runtime),
) -> JSONResponse:
    try:
        if payload is None or not payload.to or not payload.message:
            raise NotificationError("Reply requires a recipient and a message")
        await runtime.notifier.send_reply(payload.to, payload.message)
    except Exception as exc:
        logger.error("Error sending reply: %s", exc)
        return JSONResponse({"error": "Failed to send reply"}, status_code=500)
    return JSONResponse({"success": True})


__all__ = ["router"]
