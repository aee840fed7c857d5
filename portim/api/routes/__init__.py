"""API routes."""

from portim.api.routes.clients import router as clients_router
from portim.api.routes.health import router as health_router
from portim.api.routes.interfaces import router as interfaces_router
from portim.api.routes.messages import router as messages_router
from portim.api.routes.sessions import router as sessions_router

__all__ = [
    "clients_router",
    "health_router",
    "interfaces_router",
    "messages_router",
    "sessions_router",
]
