"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a router-wide auth dependency, authentication is declared
per route in mediahub.api.users, because the users router mixes open
routes (register, login, refresh-token) with protected ones.
"""

from fastapi import APIRouter

from mediahub.api.health import router as health_router
from mediahub.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])
