# storefront/tasks/recovery.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.lock_service import LockService
from storefront.services.recovery_service import RecoveryService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.recovery.recover_abandoned_checkouts_task")
def recover_abandoned_checkouts_task():
    logger.info("Abandoned checkout recovery task started")

    db = SessionLocal()
    try:
        result = RecoveryService(db, lock_service=LockService()).sweep()
    finally:
        db.close()

    return result.as_dict()
