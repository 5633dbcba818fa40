"""API routes module."""

from agora.api.routes.admin import router as admin_router
from agora.api.routes.events import router as events_router
from agora.api.routes.participation import router as participation_router
from agora.api.routes.treasury import router as treasury_router
from agora.api.routes.wallets import router as wallets_router

__all__ = [
    "admin_router",
    "events_router",
    "participation_router",
    "treasury_router",
    "wallets_router",
]
