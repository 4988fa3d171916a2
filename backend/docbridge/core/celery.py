from celery import Celery
from celery.signals import setup_logging

from docbridge.core.logging import configure_logging
from docbridge.core.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "docbridge",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["docbridge.tasks.document_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging(settings.log_level)
