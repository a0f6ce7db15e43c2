# storefront/integrations/apps/google_sheets.py
import json
import time
from datetime import datetime, timezone
from typing import Literal
from urllib.parse import quote

import requests
from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.errors import IntegrationError
from storefront.integrations.base import (
    AppDefinition,
    StoreContext,
    EVENT_ORDER_CREATED,
    EVENT_CHECKOUT_ABANDONED,
)
from storefront.utils.retry import http_retry
from storefront.utils.settings import Settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
SHEETS_URL = "https://sheets.googleapis.com/v4/spreadsheets"

ITEM_FIELD_KEYS = {"item_name", "item_quantity", "item_price", "item_variants"}

AVAILABLE_FIELDS = [
    ("order_number", "Order #"),
    ("date", "Date"),
    ("customer_name", "Customer"),
    ("customer_phone", "Phone"),
    ("customer_email", "Email"),
    ("customer_city", "City"),
    ("customer_country", "Country"),
    ("customer_address", "Address"),
    ("item_name", "Item Name"),
    ("item_quantity", "Item Qty"),
    ("item_price", "Item Price"),
    ("item_variants", "Item Variants"),
    ("subtotal", "Subtotal"),
    ("total", "Total"),
    ("status", "Status"),
    ("note", "Note"),
    ("ip_address", "IP Address"),
]


class FieldMapping(BaseModel):
    key: str
    header: str


DEFAULT_FIELD_MAPPINGS = [FieldMapping(key=k, header=h) for k, h in AVAILABLE_FIELDS]


class GoogleSheetsConfig(BaseModel):
    access_token: str = ""
    refresh_token: str = ""
    token_expiry: int = 0  # ms od epoki
    spreadsheet_id: str = ""
    sheet_name: str = "Orders"
    connected: bool = False
    track_abandoned_checkouts: bool = False
    field_mappings: list[FieldMapping] = Field(default_factory=list)
    row_grouping: Literal["per_order", "per_product"] = "per_product"

    model_config = ConfigDict(extra="ignore")


def get_headers(mappings: list[FieldMapping] | None = None) -> list[str]:
    return [f.header for f in (mappings or DEFAULT_FIELD_MAPPINGS)]


def _format_date(value: str | None) -> str:
    try:
        dt = datetime.fromisoformat(value) if value else datetime.now(timezone.utc)
    except ValueError:
        dt = datetime.now(timezone.utc)
    return dt.strftime("%b %d, %Y, %I:%M %p")


def _order_field(key: str, payload: dict, currency: str) -> str:
    if key == "order_number":
        return str(payload.get("order_number", ""))
    if key == "date":
        return _format_date(payload.get("created_at"))
    if key == "subtotal":
        return f"{payload['subtotal']} {currency}" if payload.get("subtotal") is not None else ""
    if key == "total":
        return f"{payload.get('total')} {currency}"
    if key in ("customer_name", "customer_phone", "customer_email", "customer_city",
               "customer_country", "customer_address", "status", "note", "ip_address"):
        return str(payload.get(key) or "")
    return ""


def _item_field(key: str, item: dict, currency: str) -> str:
    if key == "item_name":
        return item.get("product_name") or ""
    if key == "item_quantity":
        return str(item.get("quantity"))
    if key == "item_price":
        return f"{item.get('product_price')} {currency}"
    if key == "item_variants":
        options = item.get("variant_options") or {}
        return ", ".join(f"{k}: {v}" for k, v in options.items())
    return ""


def _build_row(mappings, payload, currency, item=None) -> list[str]:
    row = []
    for field in mappings:
        if field.key in ITEM_FIELD_KEYS:
            row.append(_item_field(field.key, item, currency) if item else "")
        else:
            row.append(_order_field(field.key, payload, currency))
    return row


def _merge_items_by_product(items: list[dict]) -> list[dict]:
    merged: dict[str, dict] = {}
    for item in items:
        variant_key = json.dumps(item.get("variant_options"), sort_keys=True) if item.get("variant_options") else ""
        key = f"{item.get('product_name')}::{variant_key}"
        if key in merged:
            merged[key]["quantity"] += item.get("quantity", 0)
        else:
            merged[key] = dict(item)
    return list(merged.values())


def format_order_rows(payload: dict, currency: str, mappings: list[FieldMapping] | None = None, grouping: str = "per_product") -> list[list[str]]:
    """
    Wiersze do arkusza.
    per_product - jeden wiersz na produkt (te same produkty/warianty sumowane),
    per_order - jeden wiersz, pola pozycji sklejone przecinkami.
    """
    mappings = mappings or DEFAULT_FIELD_MAPPINGS
    items = payload.get("items") or []

    if not items or not any(f.key in ITEM_FIELD_KEYS for f in mappings):
        return [_build_row(mappings, payload, currency)]

    if grouping == "per_order":
        row = []
        for field in mappings:
            if field.key in ITEM_FIELD_KEYS:
                row.append(", ".join(_item_field(field.key, item, currency) for item in items))
            else:
                row.append(_order_field(field.key, payload, currency))
        return [row]

    return [_build_row(mappings, payload, currency, item) for item in _merge_items_by_product(items)]


@http_retry()
def _refresh_token(refresh_token: str, settings: Settings) -> dict:
    resp = requests.post(
        TOKEN_URL,
        data={
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
        },
        timeout=10,
    )
    resp.raise_for_status()
    return resp.json()


def ensure_access_token(cfg: GoogleSheetsConfig, settings: Settings, now_ms: int | None = None) -> tuple[str, dict | None]:
    """
    Wazny access token + zmiany configu do zapisania (None gdy token byl jeszcze wazny).
    Odswiezamy minute przed wygasnieciem.
    """
    now_ms = now_ms or int(time.time() * 1000)
    if cfg.access_token and now_ms < cfg.token_expiry - 60_000:
        return cfg.access_token, None

    if not settings.google_client_id or not settings.google_client_secret:
        raise IntegrationError("Google OAuth client not configured")

    logger.info("Refreshing Google Sheets access token")
    data = _refresh_token(cfg.refresh_token, settings)
    token = data.get("access_token")
    if not token:
        raise IntegrationError("Google token refresh returned no access token")

    expires_in = int(data.get("expires_in") or 3600)
    return token, {"access_token": token, "token_expiry": now_ms + expires_in * 1000}


def handle_google_sheets(event_type: str, payload: dict, config: dict, store: StoreContext, settings: Settings) -> dict | None:
    if event_type not in (EVENT_ORDER_CREATED, EVENT_CHECKOUT_ABANDONED):
        return

    cfg = GoogleSheetsConfig.model_validate(config or {})
    if event_type == EVENT_CHECKOUT_ABANDONED and not cfg.track_abandoned_checkouts:
        return
    if not cfg.connected or not cfg.spreadsheet_id or not cfg.refresh_token:
        return

    access_token, token_update = ensure_access_token(cfg, settings)
    currency = payload.get("currency") or store.currency
    rows = format_order_rows(payload, currency, cfg.field_mappings, cfg.row_grouping)

    sheet_range = quote(cfg.sheet_name or "Orders", safe="")
    url = f"{SHEETS_URL}/{cfg.spreadsheet_id}/values/{sheet_range}:append"
    logger.info(f"Google Sheets append {len(rows)} row(s) to {cfg.spreadsheet_id}")

    resp = requests.post(
        url,
        params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
        headers={"Authorization": f"Bearer {access_token}"},
        json={"values": rows},
        timeout=15,
    )
    if not resp.ok:
        raise IntegrationError(f"Google Sheets error {resp.status_code}: {resp.text}")

    return token_update


google_sheets_app = AppDefinition(
    id="google-sheets",
    name="Google Sheets",
    description="Automatically sync new orders to a Google Spreadsheet in real time.",
    category="productivity",
    handler=handle_google_sheets,
    events=frozenset({EVENT_ORDER_CREATED, EVENT_CHECKOUT_ABANDONED}),
)
