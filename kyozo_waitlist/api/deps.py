"""Request dependencies shared by the API routers."""

from fastapi import Request

from kyozo_waitlist.runtime import WaitlistRuntime


def get_runtime(request: Request) -> WaitlistRuntime:
    return request.app.state.runtime


__all__ = ["get_runtime"]
