# storefront/integrations/apps/meta_capi.py
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

GRAPH_API_URL = "https://graph.facebook.com/v21.0"


class MetaCapiConfig(BaseModel):
    pixel_id: str = ""
    access_token: str = ""
    test_event_code: str | None = None
    test_mode: bool = False

    model_config = ConfigDict(extra="ignore")


def build_purchase_event(payload: dict, currency: str, event_time: int | None = None) -> dict:
    first_name, last_name = split_name(payload.get("customer_name") or "")

    user_data = {}
    if payload.get("customer_phone"):
        user_data["ph"] = [hash_sha256(normalize_phone_for_hash(payload["customer_phone"]))]
    if first_name:
        user_data["fn"] = [hash_sha256(first_name)]
    if last_name:
        user_data["ln"] = [hash_sha256(last_name)]
    if payload.get("customer_city"):
        user_data["ct"] = [hash_sha256(payload["customer_city"])]
    iso = resolve_country_iso(payload.get("customer_country"))
    if iso:
        user_data["country"] = [hash_sha256(iso)]

    contents = [
        {"id": item.get("product_name"), "quantity": item.get("quantity"), "item_price": item.get("product_price")}
        for item in payload.get("items") or []
    ]

    return {
        "event_name": "Purchase",
        "event_time": event_time or int(time.time()),
        "action_source": "website",
        "user_data": user_data,
        "custom_data": {
            "value": payload.get("total"),
            "currency": currency.upper(),
            "content_type": "product",
            "order_id": str(payload.get("order_number")),
            "contents": contents,
        },
    }


def handle_meta_capi(event_type: str, payload: dict, config: dict, store: StoreContext, settings: Settings) -> None:
    cfg = MetaCapiConfig.model_validate(config or {})
    if not cfg.pixel_id or not cfg.access_token:
        return
    if event_type != EVENT_ORDER_CREATED:
        return

    body = {"data": [build_purchase_event(payload, payload.get("currency") or store.currency)]}
    if cfg.test_mode and cfg.test_event_code:
        body["test_event_code"] = cfg.test_event_code

    logger.info(f"Meta CAPI Purchase for order {payload.get('order_number')} (pixel {cfg.pixel_id})")

    resp = requests.post(
        f"{GRAPH_API_URL}/{cfg.pixel_id}/events",
        params={"access_token": cfg.access_token},
        json=body,
        timeout=15,
    )
    if not resp.ok:
        raise IntegrationError(f"Meta CAPI error {resp.status_code}: {resp.text}")


meta_capi_app = AppDefinition(
    id="meta-capi",
    name="Meta Conversions API",
    description="Send server-side Purchase events to Facebook for accurate ad conversion tracking.",
    category="analytics",
    handler=handle_meta_capi,
    events=frozenset({EVENT_ORDER_CREATED}),
)
