"""API routers."""

from proposal_api.routers.follow_ups import router as follow_ups_router
from proposal_api.routers.internal import router as internal_router
from proposal_api.routers.notifications import router as notifications_router
from proposal_api.routers.push import router as push_router
from proposal_api.routers.websocket import router as websocket_router

__all__ = [
    "follow_ups_router",
    "internal_router",
    "notifications_router",
    "push_router",
    "websocket_router",
]
