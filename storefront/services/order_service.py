# storefront/services/order_service.py
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderItemModel, ORDER_STATUSES
from storefront.data.models.store import StoreModel
from storefront.domain.errors import (
    InvalidInput,
    AbuseCheckFailed,
    NotFound,
    InvalidSelection,
    PartialPersistenceError,
)
from storefront.domain.schemas import PlaceOrderIn
from storefront.integrations.base import EVENT_ORDER_CREATED, EVENT_ORDER_STATUS_CHANGED
from storefront.repos.order_repo import OrderRepo
from storefront.repos.store_repo import StoreRepo
from storefront.services.captcha_verifier import CaptchaVerifier
from storefront.services.catalog_resolver import CatalogResolver, CartLine
from storefront.services.geolocation import GeoLocator
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _money(value: Decimal) -> float:
    return float(Decimal(value).quantize(CENT))


def snapshot_item(item: OrderItemModel) -> Dict[str, Any]:
    return {
        "product_id": str(item.product_id),
        "variant_id": str(item.variant_id) if item.variant_id else None,
        "product_name": item.product_name,
        "product_price": _money(item.product_price),
        "variant_options": item.variant_options,
        "quantity": item.quantity,
        "image_url": item.image_url,
    }


def build_order_payload(order: OrderModel, items: list[OrderItemModel], store: StoreModel) -> Dict[str, Any]:
    """Payload eventow order.* - tylko typy JSON, idzie przez Celery i do integration_events."""
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "store_name": store.name,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_email": order.customer_email,
        "customer_city": order.customer_city,
        "customer_country": order.customer_country,
        "customer_address": order.customer_address,
        "note": order.note,
        "ip_address": order.ip_address,
        "payment_method": order.payment_method,
        "status": order.status,
        "subtotal": _money(order.subtotal),
        "total": _money(order.total),
        "currency": order.currency,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [snapshot_item(i) for i in items],
    }


class OrderService:
    """
    Przyjmowanie zamowien ze storefrontu.

    Kolejnosc jest twarda: walidacja -> anty-abuse -> sklep -> ceny z katalogu
    -> zapis -> event. Ceny z klienta nigdy nie sa brane pod uwage.
    """

    def __init__(
        self,
        db: Session,
        captcha: CaptchaVerifier | None = None,
        geolocator: GeoLocator | None = None,
        publisher=None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.store_repo = StoreRepo(db)
        self.catalog = CatalogResolver(db)
        self.captcha = captcha or CaptchaVerifier()
        self.geolocator = geolocator or GeoLocator()
        self.publisher = publisher or NotificationService()

    #command
    def place_order(self, payload: PlaceOrderIn, client_ip: str | None = None) -> Dict[str, Any]:
        slug = _clean(payload.slug)
        name = _clean(payload.customer_name)
        phone = _clean(payload.customer_phone)
        address = _clean(payload.customer_address)

        # 1. ksztalt
        if not slug or not name or not phone or not address or not payload.items:
            raise InvalidInput("Missing required fields")

        # 2. captcha
        if not self.captcha.verify(payload.captcha_token):
            logger.info(f"Captcha verification failed for store {slug}")
            raise AbuseCheckFailed("CAPTCHA verification failed")

        # 3. sklep
        store = self.store_repo.get_published_by_slug(slug)
        if not store:
            raise NotFound("Store not found")

        # 4. ceny i dostepnosc z katalogu
        lines = [CartLine(i.product_id, i.variant_id, i.quantity) for i in payload.items]
        resolved = self.catalog.resolve(store.id, lines)

        requested = defaultdict(int)
        for line in resolved:
            requested[(line.product_id, line.variant_id)] += line.quantity

        for line in resolved:
            if not line.available:
                if line.variant_id:
                    raise InvalidSelection("Invalid or unavailable variant selection")
                raise InvalidSelection("Some products are unavailable")
            if line.stock is not None and line.stock < requested[(line.product_id, line.variant_id)]:
                if line.variant_id:
                    raise InvalidSelection("Not enough stock for this variant")
                raise InvalidSelection("Not enough stock for this product")

        # 5. kraj
        country = _clean(payload.customer_country) or self.geolocator.country_for_ip(client_ip)

        # 6. sumy (bez podatku i dostawy)
        subtotal = sum((line.unit_price * line.quantity for line in resolved), Decimal("0.00")).quantize(CENT)
        total = subtotal

        # 7. zapis
        order = self.repo.create_order(
            OrderModel(
                store_id=store.id,
                customer_name=name,
                customer_phone=phone,
                customer_email=_clean(payload.customer_email),
                customer_city=_clean(payload.customer_city),
                customer_country=country,
                customer_address=address,
                note=_clean(payload.note),
                ip_address=client_ip,
                subtotal=subtotal,
                total=total,
                currency=store.currency,
                payment_method="cod",
                status="pending",
            )
        )

        order_items = [
            OrderItemModel(
                order_id=order.id,
                product_id=line.product_id,
                variant_id=line.variant_id,
                product_name=line.name,
                product_price=line.unit_price,
                variant_options=line.variant_options,
                image_url=line.image_url,
                quantity=line.quantity,
            )
            for line in resolved
        ]

        # order_number odczytany przed zapisem pozycji - po rollbacku obiekt jest expired
        order_id, order_number = order.id, order.order_number
        try:
            self.repo.add_items(order_items)
        except Exception as e:
            logger.error(
                f"Order {order_id} (#{order_number}) in store {store.id} persisted without items, "
                f"manual reconciliation required: {e}"
            )
            raise PartialPersistenceError(order_id, order_number) from e

        logger.info(f"Order #{order.order_number} ({order.id}) created in store {store.slug}, total {total} {store.currency}")

        # 8. event w tle, klient nie czeka
        self.publisher.publish(store.id, EVENT_ORDER_CREATED, build_order_payload(order, order_items, store))

        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "store_name": store.name,
            "currency": store.currency,
            "items": [snapshot_item(i) for i in order_items],
            "subtotal": subtotal,
            "total": total,
        }

    def update_status(self, order_id, status: str) -> OrderModel:
        """Zmiana statusu przez sprzedawce, bez ograniczen przejsc."""
        if status not in ORDER_STATUSES:
            raise InvalidInput(f"Unknown order status {status}")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")

        old_status = order.status
        if old_status == status:
            return order

        order = self.repo.update_order_status(order_id, status)
        store = self.store_repo.get_store(order.store_id)

        logger.info(f"Order #{order.order_number} status {old_status} -> {status}")

        payload = build_order_payload(order, list(order.items), store)
        payload.update(old_status=old_status, new_status=status)
        self.publisher.publish(store.id, EVENT_ORDER_STATUS_CHANGED, payload)

        return order

    #query
    def get_order(self, order_id) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")
        return order
