import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from storefront.api import create_app
from storefront.api.routers import checkouts
from storefront.data.models.abandoned_checkout import AbandonedCheckoutModel
from storefront.domain.errors import InvalidInput, NotFound, CheckoutExpired
from storefront.domain.schemas import CheckoutSessionIn
from storefront.services.checkout_service import CheckoutService

from conftest import make_checkout


def session_in(**overrides):
    data = {
        "slug": "atlas",
        "customer_phone": "+212600000001",
        "customer_name": "Sara Amrani",
        "cart_items": [
            {
                "product_id": str(uuid.uuid4()),
                "product_name": "Linen Shirt",
                "product_price": "100.00",
                "quantity": 1,
            }
        ],
    }
    data.update(overrides)
    return CheckoutSessionIn.model_validate(data)


@pytest.fixture
def service(db):
    return CheckoutService(db)


def test_checkout_session_is_refreshed_not_duplicated(db, store, service):
    first = service.record_checkout(session_in())
    second = service.record_checkout(session_in(customer_city="Rabat", cart_items=[
        {"product_id": str(uuid.uuid4()), "product_name": "Clay Mug", "product_price": "25.50", "quantity": 3},
    ]))

    assert first.id == second.id
    rows = db.execute(select(AbandonedCheckoutModel)).scalars().all()
    assert len(rows) == 1
    assert rows[0].status == "pending"
    assert rows[0].currency == "MAD"
    assert rows[0].customer_city == "Rabat"
    assert rows[0].customer_name == "Sara Amrani"
    assert rows[0].cart_items[0]["product_name"] == "Clay Mug"
    assert rows[0].cart_items[0]["quantity"] == 3


def test_sent_checkout_starts_a_new_session(db, store, service):
    old_id = make_checkout(db, store, age=timedelta(hours=2), status="sent")

    new = service.record_checkout(session_in())

    assert new.id != old_id
    assert new.status == "pending"


def test_checkout_session_requires_phone_and_items(store, service):
    with pytest.raises(InvalidInput):
        service.record_checkout(session_in(customer_phone=" "))
    with pytest.raises(InvalidInput):
        service.record_checkout(session_in(cart_items=[]))


def test_checkout_session_unknown_store(service):
    with pytest.raises(NotFound):
        service.record_checkout(session_in(slug="ghost"))


def test_recovery_returns_cart_and_customer(db, store, service):
    checkout_id = make_checkout(db, store, age=timedelta(hours=1), status="sent")

    data = service.get_recovery(checkout_id)

    assert data["slug"] == "atlas"
    assert data["currency"] == "MAD"
    assert data["customer_phone"] == "+212600000001"
    assert data["cart_items"][0]["product_name"] == "Linen Shirt"


def test_recovery_of_expired_checkout_is_gone(db, store, service):
    checkout_id = make_checkout(db, store, age=timedelta(hours=50), status="expired")

    with pytest.raises(CheckoutExpired):
        service.get_recovery(checkout_id)


def test_recovery_of_unknown_checkout(service):
    with pytest.raises(NotFound):
        service.get_recovery(uuid.uuid4())


@pytest.fixture
def client(db):
    app = create_app()
    app.dependency_overrides[checkouts.get_service] = lambda: CheckoutService(db)
    with TestClient(app) as client:
        yield client


def test_checkout_endpoints(client, db, store):
    res = client.post("/checkout-sessions", json=session_in().model_dump(mode="json"))
    assert res.json() == {"ok": True}

    checkout_id = db.execute(select(AbandonedCheckoutModel.id)).scalar_one()
    res = client.get(f"/recover/{checkout_id}")
    assert res.status_code == 200
    assert res.json()["customer_name"] == "Sara Amrani"

    expired_id = make_checkout(db, store, age=timedelta(hours=50), phone="+212600000005", status="expired")
    res = client.get(f"/recover/{expired_id}")
    assert res.status_code == 410
    assert res.json()["detail"]["error"] == "Expired"

    assert client.get(f"/recover/{uuid.uuid4()}").status_code == 404
