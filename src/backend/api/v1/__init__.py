"""
API v1 routes.
"""

from fastapi import APIRouter

from .endpoints import auth, bookings, jobs, messages

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
