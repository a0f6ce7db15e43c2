# storefront/services/recovery_service.py
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.abandoned_checkout import (
    AbandonedCheckoutModel,
    CHECKOUT_PENDING,
    CHECKOUT_SENT,
    CHECKOUT_RECOVERED,
)
from storefront.data.models.store import StoreModel
from storefront.integrations.base import EVENT_CHECKOUT_ABANDONED
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.dispatcher import IntegrationDispatcher
from storefront.utils.settings import Settings, settings as default_settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SWEEP_LOCK_KEY = "abandoned-checkouts:sweep:lock"


@dataclass
class SweepResult:
    expired: int = 0
    recovered: int = 0
    sent: int = 0

    @property
    def processed(self) -> int:
        return self.recovered + self.sent

    def as_dict(self) -> Dict[str, Any]:
        return {"ok": True, "processed": self.processed, **asdict(self)}


def recovery_url(store: StoreModel, checkout_id, app_url: str) -> str:
    if store.custom_domain and store.domain_verified:
        base = f"https://{store.custom_domain.strip('/')}"
    else:
        base = f"{app_url.rstrip('/')}/{store.slug}"
    return f"{base}/cart?checkout={checkout_id}"


def build_checkout_payload(checkout: AbandonedCheckoutModel, store: StoreModel, app_url: str) -> Dict[str, Any]:
    items = checkout.cart_items or []
    total = sum(
        (Decimal(str(i.get("product_price", 0))) * int(i.get("quantity", 0)) for i in items),
        Decimal("0.00"),
    )
    return {
        "abandoned_checkout_id": str(checkout.id),
        "order_number": 0,
        "customer_name": checkout.customer_name or "",
        "customer_phone": checkout.customer_phone,
        "customer_email": checkout.customer_email,
        "customer_city": checkout.customer_city,
        "customer_country": checkout.customer_country,
        "customer_address": checkout.customer_address or "",
        "items": items,
        "total": float(total.quantize(Decimal("0.01"))),
        "currency": checkout.currency,
        "status": "Pending Recovery",
        "store_name": store.name,
        "store_url": recovery_url(store, checkout.id, app_url),
        "created_at": checkout.created_at.isoformat() if checkout.created_at else None,
    }


class RecoveryService:
    """
    Sweep porzuconych checkoutow, odpalany cyklicznie z zewnatrz.

    pending|sent  -> expired    (starsze niz 48h, hurtem, na poczatku)
    pending|sent  -> recovered  (klient zlozyl zamowienie po checkoucie)
    pending       -> sent       (powiadomienie wyslane przez dispatcher)

    Kazde przejscie to warunkowy update "where status = <stary status>",
    wiec ponowne uruchomienie nie robi podwojnych przejsc.
    """

    def __init__(
        self,
        db: Session,
        dispatcher: IntegrationDispatcher | None = None,
        lock_service=None,
        settings: Settings | None = None,
    ):
        self.settings = settings or default_settings
        self.repo = CheckoutRepo(db)
        self.order_repo = OrderRepo(db)
        self.dispatcher = dispatcher or IntegrationDispatcher(db, settings=self.settings)
        self.lock_service = lock_service

    def sweep(self, now: datetime | None = None) -> SweepResult:
        if self.lock_service is None:
            return self._sweep(now or utcnow())

        # TTL dluzszy niz najgorszy przypadek: batch x limit handlera
        ttl = self.settings.checkout_sweep_batch * (self.settings.handler_timeout + 5)
        token = self.lock_service.acquire(SWEEP_LOCK_KEY, ttl)
        if not token:
            logger.warning("Abandoned checkout sweep already running, skipping")
            return SweepResult()

        try:
            return self._sweep(now or utcnow())
        finally:
            self.lock_service.release(SWEEP_LOCK_KEY, token)

    def _sweep(self, now: datetime) -> SweepResult:
        result = SweepResult()

        result.expired = self.repo.expire_older_than(
            cutoff=now - timedelta(hours=self.settings.checkout_expiry_hours),
            now=now,
        )
        if result.expired:
            logger.info(f"Expired {result.expired} abandoned checkouts")

        result.recovered = self._recover_sent(now)

        due = self.repo.get_due_pending(
            idle_before=now - timedelta(minutes=self.settings.checkout_grace_minutes),
            created_after=now - timedelta(hours=self.settings.checkout_cutoff_hours),
            limit=self.settings.checkout_sweep_batch,
        )
        logger.info(f"Found {len(due)} abandoned checkouts to process")

        for checkout, store in due:
            outcome = self._process(checkout, store, now)
            if outcome == CHECKOUT_RECOVERED:
                result.recovered += 1
            elif outcome == CHECKOUT_SENT:
                result.sent += 1

        logger.info(
            "Abandoned checkout sweep finished",
            expired=result.expired,
            recovered=result.recovered,
            sent=result.sent,
        )
        return result

    def _recover_sent(self, now: datetime) -> int:
        # klient zamowil juz po wyslanym przypomnieniu
        recovered = 0
        matches = self.repo.get_sent_with_orders(
            created_after=now - timedelta(hours=self.settings.checkout_expiry_hours),
            limit=self.settings.checkout_sweep_batch,
        )
        for checkout_id, order_id in matches:
            rowcount = self.repo.transition(
                checkout_id,
                CHECKOUT_SENT,
                {"status": CHECKOUT_RECOVERED, "recovered_order_id": order_id, "recovered_at": now, "updated_at": now},
            )
            if rowcount:
                logger.info(f"Checkout {checkout_id} recovered after reminder, order {order_id}")
                recovered += 1
        return recovered

    def _process(self, checkout: AbandonedCheckoutModel, store: StoreModel, now: datetime) -> str | None:
        checkout_id = checkout.id

        order_id = self.order_repo.first_order_since(store.id, checkout.customer_phone, checkout.created_at)
        if order_id is not None:
            rowcount = self.repo.transition(
                checkout_id,
                CHECKOUT_PENDING,
                {"status": CHECKOUT_RECOVERED, "recovered_order_id": order_id, "recovered_at": now, "updated_at": now},
            )
            if rowcount:
                logger.info(f"Checkout {checkout_id} recovered, customer already ordered")
                return CHECKOUT_RECOVERED
            return None

        payload = build_checkout_payload(checkout, store, self.settings.app_url)

        # czekamy az wszystkie handlery sie zakoncza, ich bledy zostaja w integration_events
        self.dispatcher.dispatch(store.id, EVENT_CHECKOUT_ABANDONED, payload)

        rowcount = self.repo.transition(
            checkout_id,
            CHECKOUT_PENDING,
            {"status": CHECKOUT_SENT, "sent_at": now, "updated_at": now},
        )
        if rowcount:
            logger.info(f"Recovery notification sent for checkout {checkout_id}")
            return CHECKOUT_SENT
        return None
