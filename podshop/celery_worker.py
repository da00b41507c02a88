# podshop/celery_worker.py
from celery import Celery

from podshop.utils.settings import (
    CATALOG_SYNC_INTERVAL_SECONDS,
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
)

celery_app = Celery(
    "podshop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAZNE: explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "podshop.tasks.order_fanout",
    "podshop.tasks.catalog_sync",
    "podshop.services.analytics_service",
)

# synchronizacja katalogow wszystkich providerow co CATALOG_SYNC_INTERVAL_SECONDS
celery_app.conf.beat_schedule = {
    "sync-catalogs": {
        "task": "podshop.tasks.catalog_sync.sync_all_catalogs_task",
        "schedule": float(CATALOG_SYNC_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_acks_late = True
