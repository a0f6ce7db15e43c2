# storefront/integrations/apps/tiktok_eapi.py
import time

import requests
from pydantic import BaseModel, ConfigDict

from storefront.domain.errors import IntegrationError
from storefront.integrations.base import (
    AppDefinition,
    StoreContext,
    EVENT_ORDER_CREATED,
    hash_sha256,
    normalize_phone_for_hash,
    resolve_country_iso,
    split_name,
)
from storefront.utils.settings import Settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

TIKTOK_EVENTS_URL = "https://business-api.tiktok.com/open_api/v1.3/event/track/"


class TiktokEapiConfig(BaseModel):
    pixel_code: str = ""
    access_token: str = ""
    test_event_code: str | None = None
    test_mode: bool = False

    model_config = ConfigDict(extra="ignore")


def build_complete_payment_event(payload: dict, currency: str, now: float | None = None) -> dict:
    now = now or time.time()
    first_name, last_name = split_name(payload.get("customer_name") or "")

    user = {}
    if payload.get("customer_phone"):
        hashed_phone = hash_sha256(normalize_phone_for_hash(payload["customer_phone"]))
        user["phone"] = hashed_phone
        user["external_id"] = hashed_phone
    if first_name:
        user["first_name"] = hash_sha256(first_name)
    if last_name:
        user["last_name"] = hash_sha256(last_name)
    if payload.get("customer_city"):
        user["city"] = hash_sha256(payload["customer_city"])
    iso = resolve_country_iso(payload.get("customer_country"))
    if iso:
        user["country"] = hash_sha256(iso)
    if payload.get("ip_address"):
        user["ip"] = payload["ip_address"]

    contents = [
        {
            "content_id": item.get("product_name"),
            "content_name": item.get("product_name"),
            "quantity": item.get("quantity"),
            "price": item.get("product_price"),
        }
        for item in payload.get("items") or []
    ]

    return {
        "event": "CompletePayment",
        "event_time": int(now),
        "event_id": f"order-{payload.get('order_number')}-{int(now * 1000)}",
        "user": user,
        "properties": {
            "value": payload.get("total"),
            "currency": currency.upper(),
            "content_type": "product",
            "order_id": str(payload.get("order_number")),
            "contents": contents,
        },
    }


def handle_tiktok_eapi(event_type: str, payload: dict, config: dict, store: StoreContext, settings: Settings) -> None:
    cfg = TiktokEapiConfig.model_validate(config or {})
    if not cfg.pixel_code or not cfg.access_token:
        return
    if event_type != EVENT_ORDER_CREATED:
        return

    body = {
        "event_source": "web",
        "event_source_id": cfg.pixel_code,
        "data": [build_complete_payment_event(payload, payload.get("currency") or store.currency)],
    }
    if cfg.test_mode and cfg.test_event_code:
        body["test_event_code"] = cfg.test_event_code

    logger.info(f"TikTok EAPI CompletePayment for order {payload.get('order_number')}")

    resp = requests.post(
        TIKTOK_EVENTS_URL,
        headers={"Access-Token": cfg.access_token},
        json=body,
        timeout=15,
    )
    if not resp.ok:
        raise IntegrationError(f"TikTok EAPI error {resp.status_code}: {resp.text}")


tiktok_eapi_app = AppDefinition(
    id="tiktok-eapi",
    name="TikTok Events API",
    description="Send server-side CompletePayment events to TikTok for accurate ad conversion tracking.",
    category="analytics",
    handler=handle_tiktok_eapi,
    events=frozenset({EVENT_ORDER_CREATED}),
)
