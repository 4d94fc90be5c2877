"""
API v1 Router - Main Entry Point

Aggregates the booking endpoints.
"""

from fastapi import APIRouter

from marketplace.api.v1 import bookings, group_bookings, jobs, recurring_bookings, reminders, waitlist

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"},
    }
)

router.include_router(bookings.router)
router.include_router(recurring_bookings.router)
router.include_router(group_bookings.router)
router.include_router(waitlist.router)
router.include_router(reminders.router)
router.include_router(jobs.router)
