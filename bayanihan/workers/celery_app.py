"""
Celery application configuration.

Redis is the broker and result backend. Tasks here are short (a fan-out
of notifications, a gateway poll) so the limits are tighter than the
API's request timeouts would suggest.
"""
from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from bayanihan.core.config import settings
from bayanihan.core.logging import setup_logging

# Create Celery app
celery_app = Celery(
    "bayanihan",
    broker=settings.redis_url,
    backend=settings.celery_result_backend,
)

# Configure Celery
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="Asia/Manila",
    enable_utc=True,

    # Task settings
    task_track_started=True,
    task_time_limit=120,
    task_soft_time_limit=90,

    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,  # Ack after completion so a crashed worker's task is redelivered

    # Result settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=30,
    task_max_retries=3,
)

# Auto-discover tasks from workers module
celery_app.autodiscover_tasks(["bayanihan.workers"])


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs):
    # Connecting this signal stops Celery from installing its own root handler
    setup_logging()
