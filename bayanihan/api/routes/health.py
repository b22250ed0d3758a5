"""
Health check routes.
"""
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import redis.asyncio as redis

from bayanihan.core.database import get_db
from bayanihan.core.config import settings
from bayanihan.schemas.base import BaseSchema

router = APIRouter(tags=["health"])


class HealthResponse(BaseSchema):
    status: str
    timestamp: datetime
    checks: Dict[str, str]
    integrations: Dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Liveness of the database and Redis (rate limits, Celery broker).

    Gateway and SMS are reported as configured or not; they are never
    called from here.
    """
    checks = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {e}"

    try:
        client = redis.from_url(settings.redis_url)
        await client.ping()
        await client.aclose()
        checks["redis"] = "healthy"
    except Exception as e:
        checks["redis"] = f"unhealthy: {e}"

    return HealthResponse(
        status="healthy" if all(v == "healthy" for v in checks.values()) else "degraded",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
        integrations={
            "paymongo": bool(settings.paymongo_secret_key),
            "sms": settings.sms_enabled,
            "proof_storage": bool(settings.s3_bucket_name),
        },
    )
