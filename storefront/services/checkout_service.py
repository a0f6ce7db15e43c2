# storefront/services/checkout_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.abandoned_checkout import AbandonedCheckoutModel, CHECKOUT_EXPIRED
from storefront.domain.errors import InvalidInput, NotFound, CheckoutExpired
from storefront.domain.schemas import CheckoutSessionIn
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.store_repo import StoreRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """Sesje checkoutu ze storefrontu i linki odzyskiwania koszyka."""

    def __init__(self, db: Session):
        self.repo = CheckoutRepo(db)
        self.store_repo = StoreRepo(db)

    def record_checkout(self, payload: CheckoutSessionIn) -> AbandonedCheckoutModel:
        slug = (payload.slug or "").strip()
        phone = (payload.customer_phone or "").strip()
        if not slug or not phone or not payload.cart_items:
            raise InvalidInput("Missing required fields")

        store = self.store_repo.get_published_by_slug(slug)
        if not store:
            raise NotFound("Store not found")

        # ceny jako liczby, tak jak w payloadach order.*
        cart_items = [
            {**item.model_dump(mode="json"), "product_price": float(item.product_price)}
            for item in payload.cart_items
        ]
        now = utcnow()

        #jeden pending checkout na (sklep, telefon), kolejne wizyty go odswiezaja
        checkout = self.repo.get_pending_for_phone(store.id, phone)
        if checkout is None:
            checkout = AbandonedCheckoutModel(
                store_id=store.id,
                customer_phone=phone,
                currency=store.currency,
                created_at=now,
            )
            logger.info(f"New checkout session for store {store.slug}")

        checkout.customer_name = payload.customer_name or checkout.customer_name
        checkout.customer_email = payload.customer_email or checkout.customer_email
        checkout.customer_country = payload.customer_country or checkout.customer_country
        checkout.customer_city = payload.customer_city or checkout.customer_city
        checkout.customer_address = payload.customer_address or checkout.customer_address
        checkout.cart_items = cart_items
        checkout.updated_at = now

        return self.repo.save(checkout)

    def get_recovery(self, checkout_id) -> Dict[str, Any]:
        checkout = self.repo.get_checkout(checkout_id)
        if not checkout:
            raise NotFound("Not found")
        if checkout.status == CHECKOUT_EXPIRED:
            raise CheckoutExpired("Expired")

        store = self.store_repo.get_store(checkout.store_id)
        return {
            "slug": store.slug,
            "currency": checkout.currency,
            "cart_items": checkout.cart_items or [],
            "customer_name": checkout.customer_name,
            "customer_phone": checkout.customer_phone,
            "customer_email": checkout.customer_email,
            "customer_country": checkout.customer_country,
            "customer_city": checkout.customer_city,
            "customer_address": checkout.customer_address,
        }
