# storefront/integrations/apps/whatsapp.py
import re

import requests
from pydantic import BaseModel, ConfigDict

from storefront.domain.errors import IntegrationError
from storefront.integrations.base import (
    AppDefinition,
    StoreContext,
    EVENT_ORDER_CREATED,
    EVENT_ORDER_STATUS_CHANGED,
    EVENT_CHECKOUT_ABANDONED,
)
from storefront.integrations.message_writer import generate_message
from storefront.utils.settings import Settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class WhatsAppConfig(BaseModel):
    instance_name: str = ""
    connected: bool = False

    model_config = ConfigDict(extra="ignore")


def build_whatsapp_message(event_type: str, payload: dict, store: StoreContext) -> str:
    currency = payload.get("currency") or store.currency

    if event_type == EVENT_ORDER_CREATED:
        return "\n".join([
            f"*New Order #{payload.get('order_number')}* on {store.name}",
            f"Customer: {payload.get('customer_name')}",
            f"Phone: {payload.get('customer_phone')}",
            f"Total: {payload.get('total')} {currency}",
            "Status: Pending",
        ])

    if event_type == EVENT_ORDER_STATUS_CHANGED:
        return "\n".join([
            f"*Order #{payload.get('order_number')}* status updated",
            f"{payload.get('old_status')} -> {payload.get('new_status')}",
            f"Customer: {payload.get('customer_name')}",
        ])

    if event_type == EVENT_CHECKOUT_ABANDONED:
        name = (payload.get("customer_name") or "").split(" ")[0]
        greeting = f"Hi {name}," if name else "Hi,"
        return "\n".join([
            greeting,
            f"you left some items in your cart at *{store.name}*.",
            f"Total: {payload.get('total')} {currency}",
            f"Complete your order here: {payload.get('store_url')}",
        ])

    return ""


def handle_whatsapp(event_type: str, payload: dict, config: dict, store: StoreContext, settings: Settings) -> None:
    cfg = WhatsAppConfig.model_validate(config or {})
    if not cfg.connected or not cfg.instance_name:
        logger.info(f"WhatsApp not connected for store {store.id}, skipping")
        return

    message = generate_message(event_type, payload, store, settings) or build_whatsapp_message(event_type, payload, store)
    if not message:
        return

    if not settings.evolution_api_url or not settings.evolution_api_key:
        raise IntegrationError("Evolution API not configured")

    phone = re.sub(r"[^0-9+]", "", payload.get("customer_phone") or "")
    if not phone:
        raise IntegrationError("Customer phone number is missing")

    url = f"{settings.evolution_api_url.rstrip('/')}/message/sendText/{cfg.instance_name}"
    logger.info(f"WhatsApp POST {url}")

    resp = requests.post(
        url,
        headers={"apikey": settings.evolution_api_key},
        json={"number": phone, "text": message},
        timeout=15,
    )
    if not resp.ok:
        raise IntegrationError(f"WhatsApp API error {resp.status_code}: {resp.text}")


whatsapp_app = AppDefinition(
    id="whatsapp",
    name="WhatsApp",
    description="Send order confirmations and cart reminders to customers via WhatsApp.",
    category="notifications",
    handler=handle_whatsapp,
    events=frozenset({EVENT_ORDER_CREATED, EVENT_ORDER_STATUS_CHANGED, EVENT_CHECKOUT_ABANDONED}),
)
