import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.product import ProductVariantModel
from storefront.domain.errors import (
    InvalidInput,
    AbuseCheckFailed,
    NotFound,
    InvalidSelection,
    PartialPersistenceError,
)
from storefront.domain.schemas import PlaceOrderIn, OrderReceiptOut
from storefront.services.order_service import OrderService

from conftest import FakeCaptcha, FakeGeo


def order_in(catalog, **overrides):
    data = {
        "slug": "atlas",
        "customer_name": "Sara Amrani",
        "customer_phone": "+212 600-000-001",
        "customer_address": "12 Rue des Fleurs",
        "customer_country": "Morocco",
        "captcha_token": "token",
        "items": [
            {"product_id": str(catalog["shirt"]), "quantity": 2, "product_price": 1},
            {"product_id": str(catalog["mug"]), "quantity": 1, "price": "0.01"},
        ],
    }
    data.update(overrides)
    return PlaceOrderIn.model_validate(data)


@pytest.fixture
def geo():
    return FakeGeo()


@pytest.fixture
def service(db, publisher, geo):
    return OrderService(db, captcha=FakeCaptcha(), geolocator=geo, publisher=publisher)


def order_count(db):
    return db.execute(select(func.count(OrderModel.id))).scalar_one()


def test_total_comes_from_catalog_not_client(db, service, catalog):
    receipt = service.place_order(order_in(catalog), client_ip="41.250.1.1")

    assert receipt["subtotal"] == Decimal("225.50")
    assert receipt["total"] == Decimal("225.50")
    assert receipt["store_name"] == "Atlas Goods"
    assert receipt["currency"] == "MAD"

    order = db.get(OrderModel, receipt["order_id"])
    items = db.execute(select(OrderItemModel).where(OrderItemModel.order_id == order.id)).scalars().all()
    assert order.total == order.subtotal
    assert order.total == sum(i.product_price * i.quantity for i in items)
    assert {i.product_name: i.product_price for i in items} == {
        "Linen Shirt": Decimal("100.00"),
        "Clay Mug": Decimal("25.50"),
    }


def test_order_numbers_are_sequential_per_store(db, service, catalog, other_store):
    first = service.place_order(order_in(catalog))
    second = service.place_order(order_in(catalog))
    assert (first["order_number"], second["order_number"]) == (1, 2)


def test_snapshot_survives_catalog_edit(db, service, catalog):
    from storefront.data.models.product import ProductModel

    receipt = service.place_order(order_in(catalog))

    shirt = db.get(ProductModel, catalog["shirt"])
    shirt.name = "Renamed Shirt"
    shirt.price = Decimal("999.00")
    db.commit()

    order = service.get_order(receipt["order_id"])
    names = sorted(i.product_name for i in order.items)
    assert names == ["Clay Mug", "Linen Shirt"]
    assert order.total == Decimal("225.50")


@pytest.mark.parametrize("field", ["customer_name", "customer_phone", "customer_address", "slug"])
def test_missing_required_field(service, catalog, field):
    with pytest.raises(InvalidInput):
        service.place_order(order_in(catalog, **{field: "  "}))


def test_empty_cart_is_invalid(service, catalog):
    with pytest.raises(InvalidInput):
        service.place_order(order_in(catalog, items=[]))


def test_failed_captcha(db, publisher, catalog):
    svc = OrderService(db, captcha=FakeCaptcha(result=False), geolocator=FakeGeo(), publisher=publisher)
    with pytest.raises(AbuseCheckFailed):
        svc.place_order(order_in(catalog))
    assert order_count(db) == 0


def test_unpublished_store_is_not_found(db, service, store, catalog):
    store.is_published = False
    db.commit()
    with pytest.raises(NotFound):
        service.place_order(order_in(catalog))


def test_variant_claimed_for_wrong_product_fails_whole_order(db, service, catalog):
    items = [
        {"product_id": str(catalog["mug"]), "quantity": 1},
        {"product_id": str(catalog["shirt"]), "variant_id": str(catalog["hoodie_m"]), "quantity": 1},
    ]
    with pytest.raises(InvalidSelection):
        service.place_order(order_in(catalog, items=items))
    assert order_count(db) == 0


def test_unavailable_variant(service, catalog):
    items = [{"product_id": str(catalog["hoodie"]), "variant_id": str(catalog["hoodie_l"]), "quantity": 1}]
    with pytest.raises(InvalidSelection):
        service.place_order(order_in(catalog, items=items))


def test_insufficient_variant_stock_rejects_entire_order(db, service, publisher, catalog):
    items = [
        {"product_id": str(catalog["shirt"]), "quantity": 1},
        {"product_id": str(catalog["hoodie"]), "variant_id": str(catalog["hoodie_m"]), "quantity": 3},
    ]
    with pytest.raises(InvalidSelection):
        service.place_order(order_in(catalog, items=items))
    assert order_count(db) == 0
    assert publisher.events == []


def test_stock_is_checked_across_duplicate_lines(db, service, catalog):
    items = [
        {"product_id": str(catalog["mug"]), "quantity": 3},
        {"product_id": str(catalog["mug"]), "quantity": 3},
    ]
    with pytest.raises(InvalidSelection):
        service.place_order(order_in(catalog, items=items))
    assert order_count(db) == 0


def test_draft_product_is_unavailable(service, catalog):
    with pytest.raises(InvalidSelection):
        service.place_order(order_in(catalog, items=[{"product_id": str(catalog["draft"]), "quantity": 1}]))


def test_foreign_product_is_not_found(service, catalog):
    with pytest.raises(NotFound):
        service.place_order(order_in(catalog, items=[{"product_id": str(catalog["foreign"]), "quantity": 1}]))


def test_country_falls_back_to_geolocation(db, service, geo, catalog):
    receipt = service.place_order(order_in(catalog, customer_country=None), client_ip="41.250.1.1")
    assert geo.calls == ["41.250.1.1"]
    assert db.get(OrderModel, receipt["order_id"]).customer_country == "Morocco"


def test_supplied_country_skips_geolocation(service, geo, catalog):
    service.place_order(order_in(catalog, customer_country="France"))
    assert geo.calls == []


def test_order_created_event_is_published_after_persistence(db, service, publisher, store, catalog):
    receipt = service.place_order(order_in(catalog))

    assert len(publisher.events) == 1
    store_id, event_type, payload = publisher.events[0]
    assert store_id == store.id
    assert event_type == "order.created"
    assert payload["order_id"] == str(receipt["order_id"])
    assert payload["order_number"] == 1
    assert payload["total"] == 225.5
    assert len(payload["items"]) == 2


def test_item_failure_after_order_commit_is_partial_persistence(db, service, publisher, catalog):
    with patch("storefront.services.order_service.OrderRepo.add_items", side_effect=SQLAlchemyError("disk full")):
        with pytest.raises(PartialPersistenceError) as exc_info:
            service.place_order(order_in(catalog))

    assert exc_info.value.order_number == 1
    order = db.get(OrderModel, exc_info.value.order_id)
    assert order is not None
    assert db.execute(select(func.count(OrderItemModel.id))).scalar_one() == 0
    assert publisher.events == []


def test_status_change_publishes_event(db, service, publisher, catalog):
    receipt = service.place_order(order_in(catalog))

    order = service.update_status(receipt["order_id"], "shipped")

    assert order.status == "shipped"
    _, event_type, payload = publisher.events[-1]
    assert event_type == "order.status_changed"
    assert (payload["old_status"], payload["new_status"]) == ("pending", "shipped")


def test_same_status_is_a_noop(service, publisher, catalog):
    receipt = service.place_order(order_in(catalog))
    service.update_status(receipt["order_id"], "pending")
    assert [e[1] for e in publisher.events] == ["order.created"]


def test_unknown_status_is_rejected(service, catalog):
    receipt = service.place_order(order_in(catalog))
    with pytest.raises(InvalidInput):
        service.update_status(receipt["order_id"], "lost")


def test_status_change_of_missing_order(service):
    with pytest.raises(NotFound):
        service.update_status(uuid.uuid4(), "shipped")


def test_numeric_variant_options_are_snapshotted_as_labels(db, service, store, catalog):
    variant = ProductVariantModel(product_id=catalog["hoodie"], price=Decimal("210.00"), options={"Size": 42, "Fit": "slim"})
    db.add(variant)
    db.commit()

    receipt = service.place_order(order_in(catalog, items=[
        {"product_id": str(catalog["hoodie"]), "variant_id": str(variant.id), "quantity": 1},
    ]))

    out = OrderReceiptOut.model_validate(receipt)
    assert out.items[0].variant_options == {"Size": "42", "Fit": "slim"}
    item = db.execute(select(OrderItemModel)).scalar_one()
    assert item.variant_options == {"Size": "42", "Fit": "slim"}
