"""
Rate limiting configuration using slowapi.

Limits are stored in Redis so they hold across uvicorn workers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from bayanihan.core.config import settings


def _get_actor_or_ip(request: Request) -> str:
    """Rate-limit key: the authenticated actor ID when known, otherwise client IP."""
    actor = getattr(request.state, "actor", None)
    if actor is not None:
        return str(actor.id)
    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_actor_or_ip,
    storage_uri=settings.redis_url,
    strategy="fixed-window",
)

# Pre-defined rate limit strings for use in route decorators:
#   @limiter.limit(RATE_APPLY)
RATE_POST_JOB = "20/hour"        # job creation fans out notifications
RATE_APPLY = "30/minute"         # apply, cancel, invitation responses
RATE_INVITE = "30/hour"          # invitations send SMS
RATE_PAYMENT = "10/minute"       # gateway calls cost money
RATE_DEFAULT = "60/minute"       # general API fallback
