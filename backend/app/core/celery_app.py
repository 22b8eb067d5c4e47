from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

celery_app = Celery(
    "annuaire",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={
        "app.services.review_sync.sync_company_reviews_task": {"queue": "reviews"},
        "app.services.review_sync.sync_all_reviews": {"queue": "reviews"},
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.review_sync",),
    beat_schedule={
        # Nightly refresh of provider reviews for every linked company
        "sync-external-reviews": {
            "task": "app.services.review_sync.sync_all_reviews",
            "schedule": crontab(hour=settings.REVIEW_SYNC_HOUR, minute=settings.REVIEW_SYNC_MINUTE),
        },
    },
)
