"""Form session endpoints.

A server-hosted rendition of the signup form: a client opens a session,
patches field values, and moves between steps with advance/retreat. The
last advance runs the submission pipeline; a submitted session is gone
from the registry afterwards.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from kyozo_waitlist.api.deps import get_runtime
from kyozo_waitlist.errors import SessionNotFoundError
from kyozo_waitlist.runtime import WaitlistRuntime
from kyozo_waitlist.state_machine import InvalidStateTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions")


def _not_found(exc: SessionNotFoundError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=404)


def _conflict(exc: InvalidStateTransitionError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=409)


@router.post("", status_code=201)
async def open_session(runtime: WaitlistRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    session = runtime.open_session()
    return session.to_dict()


@router.get("/{session_id}")
async def get_session(session_id: str, runtime: WaitlistRuntime = Depends(get_runtime)):
    try:
        return runtime.get_session(session_id).to_dict()
    except SessionNotFoundError as exc:
        return _not_found(exc)


@router.patch("/{session_id}/fields")
async def update_fields(
    session_id: str,
    fields: Dict[str, Any] = Body(..., embed=True),
    runtime: WaitlistRuntime = Depends(get_runtime),
):
    """Set several fields at once. Body: ``{"fields": {"firstName": "Sarah"}}``."""
    try:
        return runtime.update_fields(session_id, fields).to_dict()
    except SessionNotFoundError as exc:
        return _not_found(exc)
    except InvalidStateTransitionError as exc:
        return _conflict(exc)
    except (KeyError, ValueError) as exc:
        return JSONResponse({"error": str(exc).strip("'\"")}, status_code=400)


@router.post("/{session_id}/advance")
async def advance(session_id: str, runtime: WaitlistRuntime = Depends(get_runtime)):
    try:
        session = runtime.get_session(session_id)
        result = await runtime.advance(session_id)
    except SessionNotFoundError as exc:
        return _not_found(exc)
    except InvalidStateTransitionError as exc:
        return _conflict(exc)

    body = result.to_dict()
    if not result.submitted:
        body["session"] = session.to_dict()
    return body


@router.post("/{session_id}/retreat")
async def retreat(session_id: str, runtime: WaitlistRuntime = Depends(get_runtime)):
    try:
        return runtime.retreat(session_id).to_dict()
    except SessionNotFoundError as exc:
        return _not_found(exc)
    except InvalidStateTransitionError as exc:
        return _conflict(exc)


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, runtime: WaitlistRuntime = Depends(get_runtime)) -> None:
    runtime.close_session(session_id)


__all__ = ["router"]
