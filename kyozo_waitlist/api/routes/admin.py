"""Gate endpoints: the form passcode and the admin login check."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kyozo_waitlist.api.deps import get_runtime
from kyozo_waitlist.passcode import INVALID_PASSCODE_MESSAGE
from kyozo_waitlist.runtime import WaitlistRuntime

logger = logging.getLogger(__name__)

router = APIRouter()


class PasscodeRequest(BaseModel):
    passcode: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


@router.post("/api/passcode")
async def check_passcode(
    payload: Optional[PasscodeRequest] = None,
    runtime: WaitlistRuntime = Depends(get_runtime),
) -> JSONResponse:
    entered = payload.passcode if payload is not None else ""
    if runtime.passcode_gate.check(entered):
        return JSONResponse({"success": True})
    return JSONResponse({"success": False, "error": INVALID_PASSCODE_MESSAGE})


@router.post("/api/admin/login")
async def admin_login(
    payload: LoginRequest,
    runtime: WaitlistRuntime = Depends(get_runtime),
) -> JSONResponse:
    gate = runtime.admin_gate()
    result = await gate.login(payload.email, payload.password)
    if not result.ok:
        return JSONResponse({"error": result.message}, status_code=401)
    return JSONResponse(result.to_dict())


__all__ = ["router"]
