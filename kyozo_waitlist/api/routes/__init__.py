"""APIRouter registration for the waitlist service."""

from fastapi import APIRouter

from kyozo_waitlist.api.routes.admin import router as admin_router
from kyozo_waitlist.api.routes.email import router as email_router
from kyozo_waitlist.api.routes.sessions import router as sessions_router
from kyozo_waitlist.api.routes.submissions import router as submissions_router

api_router = APIRouter()
api_router.include_router(email_router, tags=["Email"])
api_router.include_router(submissions_router, tags=["Submissions"])
api_router.include_router(sessions_router, tags=["Form"])
api_router.include_router(admin_router, tags=["Gates"])

__all__ = ["api_router"]
