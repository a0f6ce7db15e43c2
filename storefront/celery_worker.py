# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import settings

celery_app = Celery(
    "storefront",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "storefront.tasks.recovery",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "recover-abandoned-checkouts": {
        "task": "storefront.tasks.recovery.recover_abandoned_checkouts_task",
        "schedule": float(settings.checkout_sweep_interval),
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_serializer = "json"
# task dispatchu nie moze zginac razem z workerem w polowie
celery_app.conf.task_acks_late = True
