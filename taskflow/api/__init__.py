"""
API package for the TaskFlow Pro backend.

This package aggregates all API routers to be included in the FastAPI
application. The API is versioned under ``/api/v1``.
"""

from fastapi import APIRouter, Depends
from .v1.auth import router as auth_router
from .v1.automations import router as automations_router
from .v1.boards import router as boards_router
from .v1.health import router as health_router
from .v1.push import router as push_router
from .v1.templates import router as templates_router
from ..core.auth import get_current_user
from ..core.rate_limit import rate_limit_dependency

api_router = APIRouter()
protected = [Depends(get_current_user), Depends(rate_limit_dependency)]
api_router.include_router(auth_router, dependencies=[Depends(rate_limit_dependency)])
api_router.include_router(health_router)
api_router.include_router(boards_router, dependencies=protected)
api_router.include_router(automations_router, dependencies=protected)
api_router.include_router(templates_router, dependencies=protected)
api_router.include_router(push_router, dependencies=protected)
