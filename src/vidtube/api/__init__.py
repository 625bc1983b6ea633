"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and auth routers are open. The users router resolves
the current user per route (handlers need the identity itself, not
just the check), so it is included without a router-level dependency.
"""

from fastapi import APIRouter

from vidtube.api.auth import router as auth_router
from vidtube.api.health import router as health_router
from vidtube.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users", "channels"])
