import threading
import uuid

from sqlalchemy import select

from storefront.data.models.integration import IntegrationEventModel, IntegrationInstallationModel
from storefront.domain.errors import IntegrationError
from storefront.services.dispatcher import IntegrationDispatcher

from conftest import make_app, install

PAYLOAD = {"order_number": 7, "customer_name": "Sara", "items": [{"product_name": "Mug", "quantity": 1}]}


def events(db):
    db.expire_all()
    return {e.integration_id: e for e in db.execute(select(IntegrationEventModel)).scalars().all()}


def ok_handler(event_type, payload, config, store, settings=None):
    return None


def failing_handler(event_type, payload, config, store, settings=None):
    raise IntegrationError("invalid access token")


def test_one_row_per_eligible_integration(db, store, settings):
    registry = {
        "alpha": make_app("alpha", ok_handler, ["order.created"]),
        "beta": make_app("beta", ok_handler, ["order.created"]),
        "gamma": make_app("gamma", ok_handler, ["order.created"]),
    }
    for integration_id in registry:
        install(db, store, integration_id)

    results = IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "order.created", PAYLOAD)

    assert len(results) == 3
    rows = events(db)
    assert set(rows) == {"alpha", "beta", "gamma"}
    for row in rows.values():
        assert row.status == "completed"
        assert row.error is None
        assert row.processed_at is not None
        assert row.event_type == "order.created"
        assert row.payload == PAYLOAD


def test_failure_is_isolated_to_its_own_row(db, store, settings):
    registry = {
        "good": make_app("good", ok_handler, ["order.created"]),
        "bad": make_app("bad", failing_handler, ["order.created"]),
    }
    install(db, store, "good")
    install(db, store, "bad")

    results = IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "order.created", PAYLOAD)

    assert {r.integration_id: r.status for r in results} == {"good": "completed", "bad": "failed"}
    rows = events(db)
    assert len(rows) == 2
    assert rows["good"].status == "completed"
    assert rows["bad"].status == "failed"
    assert rows["bad"].error == "invalid access token"
    assert rows["bad"].processed_at is not None


def test_unsubscribed_unknown_and_disabled_installations_are_skipped(db, store, settings):
    registry = {
        "orders-only": make_app("orders-only", ok_handler, ["order.created"]),
        "checkouts": make_app("checkouts", ok_handler, ["checkout.abandoned"]),
        "disabled": make_app("disabled", ok_handler, ["checkout.abandoned"]),
    }
    install(db, store, "orders-only")
    install(db, store, "checkouts")
    install(db, store, "disabled", enabled=False)
    install(db, store, "retired-app")

    results = IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "checkout.abandoned", PAYLOAD)

    assert [r.integration_id for r in results] == ["checkouts"]
    assert set(events(db)) == {"checkouts"}


def test_no_installations_creates_no_rows(db, store, settings):
    results = IntegrationDispatcher(db, registry={}, settings=settings).dispatch(store.id, "order.created", PAYLOAD)
    assert results == []
    assert events(db) == {}


def test_handlers_run_concurrently(db, store, settings):
    barrier = threading.Barrier(2, timeout=5)

    def waits_for_peer(event_type, payload, config, store, settings=None):
        # przejdzie tylko jesli drugi handler dziala w tym samym czasie
        barrier.wait()

    registry = {
        "first": make_app("first", waits_for_peer, ["order.created"]),
        "second": make_app("second", waits_for_peer, ["order.created"]),
    }
    install(db, store, "first")
    install(db, store, "second")

    results = IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "order.created", PAYLOAD)

    assert [r.status for r in results] == ["completed", "completed"]


def test_slow_handler_times_out_without_blocking_others(db, store, settings):
    release = threading.Event()

    def hangs(event_type, payload, config, store, settings=None):
        release.wait(10)

    registry = {
        "slow": make_app("slow", hangs, ["order.created"]),
        "fast": make_app("fast", ok_handler, ["order.created"]),
    }
    install(db, store, "slow")
    install(db, store, "fast")

    try:
        IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "order.created", PAYLOAD)
    finally:
        release.set()

    rows = events(db)
    assert rows["fast"].status == "completed"
    assert rows["slow"].status == "failed"
    assert "timed out" in rows["slow"].error


def test_handlers_get_their_own_config_and_cannot_mutate_payload(db, store, settings):
    seen = {}

    def mutating(event_type, payload, config, store, settings=None):
        seen["config"] = dict(config)
        seen["store"] = store
        payload["items"].clear()
        payload["order_number"] = 0

    registry = {"mutating": make_app("mutating", mutating, ["order.created"])}
    install(db, store, "mutating", config={"api_key": "k-1"})

    payload = {"order_number": 7, "items": [{"product_name": "Mug"}]}
    IntegrationDispatcher(db, registry=registry, settings=settings).dispatch(store.id, "order.created", payload)

    assert payload == {"order_number": 7, "items": [{"product_name": "Mug"}]}
    assert events(db)["mutating"].payload == payload
    assert seen["config"] == {"api_key": "k-1"}
    assert seen["store"].name == "Atlas Goods"
    assert seen["store"].currency == "MAD"


def test_unknown_store_dispatches_nothing(db, settings):
    assert IntegrationDispatcher(db, registry={}, settings=settings).dispatch(uuid.uuid4(), "order.created", PAYLOAD) == []


def test_config_returned_by_handler_is_saved(db, store, settings):
    def rotates_token(event_type, payload, config, store, settings=None):
        return {"access_token": config["access_token"] + "-2"}

    registry = {
        "rotating": make_app("rotating", rotates_token, ["order.created"]),
        "broken": make_app("broken", failing_handler, ["order.created"]),
    }
    install(db, store, "rotating", config={"access_token": "t", "sheet": "Orders"})
    install(db, store, "broken", config={"access_token": "b"})

    dispatcher = IntegrationDispatcher(db, registry=registry, settings=settings)
    dispatcher.dispatch(store.id, "order.created", PAYLOAD)
    dispatcher.dispatch(store.id, "order.created", PAYLOAD)

    db.expire_all()
    configs = {i.integration_id: i.config for i in db.execute(select(IntegrationInstallationModel)).scalars()}
    assert configs["rotating"] == {"access_token": "t-2-2", "sheet": "Orders"}
    assert configs["broken"] == {"access_token": "b"}
