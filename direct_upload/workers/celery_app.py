"""
Celery application configuration.
Sets up Celery with Redis broker and the periodic expiry sweep.

Run with:
    celery -A direct_upload.workers.celery_app worker --beat
"""
from celery import Celery
from celery.signals import setup_logging
from direct_upload.config import settings
from direct_upload.utils.logging import configure_logging

# Create Celery app
celery_app = Celery(
    "direct_upload",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "direct_upload.tasks.sweep_uploads",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    beat_schedule={
        "sweep-expired-uploads": {
            "task": "sweep_expired_uploads",
            "schedule": float(settings.upload_sweep_interval),
        },
    },
)


@setup_logging.connect
def setup_worker_logging(**kwargs):
    """Use structured JSON logging instead of Celery's default handlers."""
    configure_logging('upload-worker', settings.log_level)
