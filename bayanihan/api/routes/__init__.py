"""
API Routes package.
"""
from fastapi import APIRouter

from bayanihan.api.routes.health import router as health_router
from bayanihan.api.routes.jobs import router as jobs_router
from bayanihan.api.routes.payments import router as payments_router
from bayanihan.api.routes.admin import router as admin_router

# Main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(health_router)
api_router.include_router(jobs_router)
api_router.include_router(payments_router)
api_router.include_router(admin_router)

__all__ = [
    "api_router",
    "health_router",
    "jobs_router",
    "payments_router",
    "admin_router",
]
