"""
API package.
"""
from bayanihan.api.routes import api_router
from bayanihan.api.deps import (
    get_current_user,
    get_actor,
    get_admin_actor,
    get_job_service,
    get_payment_service,
)

__all__ = [
    "api_router",
    "get_current_user",
    "get_actor",
    "get_admin_actor",
    "get_job_service",
    "get_payment_service",
]
