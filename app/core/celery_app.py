"""
Celery application configuration for the booking API.

Celery runs the queued extraction + pricing of bulk-uploaded drafts so the
upload request returns as soon as the documents are stored.

Usage:
    # Start worker (from project root):
    celery -A app.core.celery_app worker --loglevel=info
"""
from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "easydrive",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.services.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Toronto",
    enable_utc=True,

    # Task execution
    task_acks_late=True,  # Acknowledge after task completes (safety)
    task_reject_on_worker_lost=True,

    # Result backend
    result_expires=86400,  # Results expire after 24 hours

    # Worker settings
    worker_prefetch_multiplier=1,

    # Task routing
    task_routes={
        "app.services.tasks.process_bulk_draft": {"queue": "extraction"},
        "app.services.tasks.*": {"queue": "default"},
    },

    # Extraction webhook can be slow on multi-page scans
    task_soft_time_limit=180,
    task_time_limit=240,

    # Retry settings
    task_default_retry_delay=30,
    task_max_retries=3,
)

celery_app.conf.task_queues = {
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
    "extraction": {
        "exchange": "extraction",
        "routing_key": "extraction",
    },
}
