# storefront/services/notification_service.py
import uuid

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.dispatcher import IntegrationDispatcher
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Publikacja eventow integracji w tle (fire and forget).
    Request nie czeka na dostarczenie, Celery gwarantuje ze task sie wykona
    niezaleznie od tego, czy odpowiedz do klienta juz poszla.
    """

    @staticmethod
    def publish(store_id, event_type: str, payload: dict) -> None:
        try:
            dispatch_integration_event_task.delay(str(store_id), event_type, payload)
        except Exception as e:
            # broker niedostepny nie moze zepsuc zamowienia, ktore juz jest zapisane
            logger.error(f"Could not enqueue {event_type} for store {store_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.dispatch_integration_event_task")
def dispatch_integration_event_task(store_id: str, event_type: str, payload: dict):
    """Celery task - fan-out eventu do integracji sklepu."""
    logger.info(f"[DISPATCH] {event_type} for store {store_id}")

    db = SessionLocal()
    try:
        results = IntegrationDispatcher(db).dispatch(uuid.UUID(store_id), event_type, payload)
    finally:
        db.close()

    return [
        {"integration_id": r.integration_id, "status": r.status, "error": r.error}
        for r in results
    ]
