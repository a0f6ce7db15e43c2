import os

# przed importem storefront - engine z modulu database nie moze celowac w postgresa
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.data.database import Base, utcnow
from storefront.data import models  # noqa: F401
from storefront.data.models.store import StoreModel
from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.data.models.integration import IntegrationInstallationModel
from storefront.data.models.abandoned_checkout import AbandonedCheckoutModel
from storefront.integrations.base import AppDefinition
from storefront.utils.settings import Settings


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        app_url="https://shop.example.com",
        cron_secret="cron-secret",
        handler_timeout=2,
    )


class FakePublisher:
    def __init__(self):
        self.events = []

    def publish(self, store_id, event_type, payload):
        self.events.append((store_id, event_type, payload))


class FakeCaptcha:
    def __init__(self, result=True):
        self.result = result
        self.tokens = []

    def verify(self, token):
        self.tokens.append(token)
        return self.result


class FakeGeo:
    def __init__(self, country="Morocco"):
        self.country = country
        self.calls = []

    def country_for_ip(self, ip):
        self.calls.append(ip)
        return self.country


class FakeLock:
    def __init__(self, available=True):
        self.available = available
        self.released = []

    def acquire(self, key, ttl):
        return "token" if self.available else None

    def release(self, key, token):
        self.released.append((key, token))
        return True


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def store(db):
    store = StoreModel(slug="atlas", name="Atlas Goods", currency="MAD", language="en", is_published=True)
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


@pytest.fixture
def other_store(db):
    store = StoreModel(slug="other", name="Other Shop", currency="EUR", is_published=True)
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


@pytest.fixture
def catalog(db, store, other_store):
    shirt = ProductModel(store_id=store.id, name="Linen Shirt", price=Decimal("100.00"), image_url="https://cdn/shirt.jpg")
    mug = ProductModel(store_id=store.id, name="Clay Mug", price=Decimal("25.50"), stock=5)
    hoodie = ProductModel(store_id=store.id, name="Hoodie", price=Decimal("200.00"))
    draft = ProductModel(store_id=store.id, name="Draft Bag", price=Decimal("10.00"), status="draft")
    foreign = ProductModel(store_id=other_store.id, name="Foreign Lamp", price=Decimal("5.00"))
    db.add_all([shirt, mug, hoodie, draft, foreign])
    db.flush()

    hoodie_m = ProductVariantModel(product_id=hoodie.id, price=Decimal("220.00"), options={"Size": "M"}, stock=2)
    hoodie_l = ProductVariantModel(product_id=hoodie.id, price=Decimal("230.00"), options={"Size": "L"}, is_available=False)
    db.add_all([hoodie_m, hoodie_l])
    db.commit()

    return {
        "shirt": shirt.id,
        "mug": mug.id,
        "hoodie": hoodie.id,
        "hoodie_m": hoodie_m.id,
        "hoodie_l": hoodie_l.id,
        "draft": draft.id,
        "foreign": foreign.id,
    }


def make_app(app_id, handler, events):
    return AppDefinition(
        id=app_id,
        name=app_id,
        description="test app",
        category="notifications",
        handler=handler,
        events=frozenset(events),
    )


def install(db, store, integration_id, config=None, enabled=True):
    installation = IntegrationInstallationModel(
        store_id=store.id,
        integration_id=integration_id,
        config=config or {},
        is_enabled=enabled,
    )
    db.add(installation)
    db.commit()
    return installation


def make_checkout(db, store, age, phone="+212600000001", idle=None, status="pending", items=None):
    created = utcnow() - age
    checkout = AbandonedCheckoutModel(
        store_id=store.id,
        customer_phone=phone,
        customer_name="Sara Amrani",
        cart_items=items if items is not None else [
            {"product_id": "p1", "product_name": "Linen Shirt", "product_price": 100.0, "quantity": 2},
        ],
        currency=store.currency,
        status=status,
        created_at=created,
        updated_at=utcnow() - idle if idle is not None else created,
    )
    db.add(checkout)
    db.commit()
    return checkout.id

