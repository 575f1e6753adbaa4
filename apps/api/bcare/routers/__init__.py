"""API routers."""

from bcare.routers.activities import router as activities_router
from bcare.routers.feedback import router as feedback_router
from bcare.routers.internal import router as internal_router
from bcare.routers.reference import router as reference_router
from bcare.routers.tickets import router as tickets_router

__all__ = [
    "activities_router",
    "feedback_router",
    "internal_router",
    "reference_router",
    "tickets_router",
]
