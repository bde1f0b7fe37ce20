"""Master API router — mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from seasonscape.api import calendar, enhance, health, visualize

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(calendar.router)
api_router.include_router(visualize.router)
api_router.include_router(enhance.router)
