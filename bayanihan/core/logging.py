"""
Structured logging configuration using structlog.

- Production: JSON lines for the log aggregator
- Development: colored console output

Every request carries a `request_id`; once the identity gate has resolved
the caller, `actor_id` is bound as well so a whole job transition can be
followed across the API and the effect dispatcher.
"""
import logging
import sys
import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from bayanihan.core.config import settings

# Keys whose values never reach the log stream in clear text
_SENSITIVE_KEYS = frozenset({"mobile_no", "phone", "to_number", "authorization", "client_key"})


def _mask_sensitive(_logger: Any, _method: str, event_dict: dict) -> dict:
    for key in _SENSITIVE_KEYS.intersection(event_dict):
        value = str(event_dict[key])
        event_dict[key] = f"***{value[-3:]}" if len(value) > 3 else "***"
    return event_dict


def setup_logging() -> None:
    """Configure structlog and stdlib logging. Call once per process (API or worker)."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _mask_sensitive,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.environment == "development":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # Gateway, SMS and S3 clients log every request at INFO
    for noisy in ("uvicorn.access", "httpx", "aiobotocore", "twilio.http_client"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structlog logger."""
    return structlog.get_logger(name)


def bind_actor(actor_id: Any, role: str) -> None:
    """Attach the resolved caller to every log line for the rest of the request."""
    structlog.contextvars.bind_contextvars(actor_id=str(actor_id), actor_role=role)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request ID (incoming X-Request-ID or a fresh UUID) for log correlation."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
