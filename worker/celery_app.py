from celery import Celery
from celery.signals import setup_logging

from app.core.config import settings
from app.core.telemetry import configure_logging

celery = Celery(
    "foodshare-worker",
    broker=settings.rabbitmq_url,
    backend=settings.redis_url,
    include=["worker.tasks"],
)

celery.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    task_routes={
        "worker.tasks.expire_listings": {"queue": "maintenance"},
    },
    beat_schedule={
        # run with: celery -A worker.celery_app beat
        "expire-listings": {
            "task": "worker.tasks.expire_listings",
            "schedule": float(settings.listing_expiry_interval_seconds),
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()
