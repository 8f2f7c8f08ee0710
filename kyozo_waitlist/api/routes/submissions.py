"""Submission management endpoint used by the admin view."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kyozo_waitlist.api.deps import get_runtime
from kyozo_waitlist.errors import StoreError, SubmissionNotFoundError
from kyozo_waitlist.events import FormEvent
from kyozo_waitlist.runtime import WaitlistRuntime
from kyozo_waitlist.types import EventType

logger = logging.getLogger(__name__)

router = APIRouter()


class DeleteRequest(BaseModel):
    id: Optional[str] = None


@router.delete("/api/delete-submission")
async def delete_submission(
    payload: Optional[DeleteRequest] = None,
    runtime: WaitlistRuntime = Depends(get_runtime),
) -> JSONResponse:
    submission_id = payload.id if payload is not None else None
    if not submission_id:
        return JSONResponse({"error": "Missing submission ID"}, status_code=400)

    try:
        await runtime.store.delete(submission_id)
    except SubmissionNotFoundError as exc:
        return JSONResponse({"error": str(exc)}, status_code=404)
    except StoreError as exc:
        logger.error("Error deleting submission %s: %s", submission_id, exc)
        return JSONResponse(
            {"error": "Failed to delete submission", "details": str(exc)},
            status_code=500,
        )

    runtime.emitter.emit(FormEvent.create(EventType.SUBMISSION_DELETED, payload={"submissionId": submission_id}))
    return JSONResponse({"success": True, "message": "Submission deleted successfully"})


__all__ = ["router"]
