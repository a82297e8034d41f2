from celery import Celery
from tmdash.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tmdash_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["tmdash.tasks.po_numbers"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    beat_schedule={
        "po-backfill": {
            "task": "tmdash.tasks.po_numbers.backfill_po_numbers",
            "schedule": settings.PO_BACKFILL_INTERVAL_SECONDS,
        },
    },
)
