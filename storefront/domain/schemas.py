# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from decimal import Decimal
from datetime import datetime
from uuid import UUID


class CartLineIn(BaseModel):
    """Pozycja koszyka wyslana przez klienta. Cena celowo nie jest przyjmowana."""

    product_id: UUID
    variant_id: UUID | None = None
    quantity: int = Field(..., gt=0, description="Ilosc produktu (musi byc > 0)")

    model_config = ConfigDict(extra="ignore")


class PlaceOrderIn(BaseModel):
    """
    Zamowienie ze storefrontu.
    Wymagane pola sprawdza OrderService (InvalidInput), nie pydantic.
    """

    slug: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    customer_city: str | None = None
    customer_country: str | None = None
    customer_address: str | None = None
    note: str | None = Field(None, max_length=500)
    captcha_token: str | None = None
    items: List[CartLineIn] = Field(default_factory=list)

    # klient moze wyslac ceny, sa ignorowane
    model_config = ConfigDict(extra="ignore")


class OrderItemOut(BaseModel):
    product_id: UUID
    variant_id: UUID | None = None
    product_name: str
    product_price: Decimal
    variant_options: dict[str, str] | None = None
    quantity: int
    image_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderReceiptOut(BaseModel):
    """Odpowiedz po zlozeniu zamowienia (do wyrenderowania potwierdzenia)."""

    order_id: UUID
    order_number: int
    store_name: str
    currency: str
    items: List[OrderItemOut]
    subtotal: Decimal
    total: Decimal


class OrderOut(BaseModel):
    id: UUID
    store_id: UUID
    order_number: int
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    customer_city: str | None = None
    customer_country: str | None = None
    customer_address: str
    note: str | None = None
    subtotal: Decimal
    total: Decimal
    currency: str
    payment_method: str
    status: str
    created_at: datetime
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrderStatusIn(BaseModel):
    status: Literal["pending", "confirmed", "shipped", "delivered"]


class CheckoutItemIn(BaseModel):
    """Snapshot pozycji koszyka, ten sam ksztalt co order_items."""

    product_id: UUID
    variant_id: UUID | None = None
    product_name: str
    product_price: Decimal = Field(..., ge=0)
    variant_options: dict[str, str] | None = None
    quantity: int = Field(..., gt=0)
    image_url: str | None = None


class CheckoutSessionIn(BaseModel):
    slug: str | None = None
    customer_phone: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_country: str | None = None
    customer_city: str | None = None
    customer_address: str | None = None
    cart_items: List[CheckoutItemIn] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class RecoveryOut(BaseModel):
    slug: str
    currency: str
    cart_items: list[dict]
    customer_name: str | None = None
    customer_phone: str
    customer_email: str | None = None
    customer_country: str | None = None
    customer_city: str | None = None
    customer_address: str | None = None


class SweepOut(BaseModel):
    ok: bool = True
    processed: int
    expired: int
    recovered: int
    sent: int


class IntegrationAppOut(BaseModel):
    id: str
    name: str
    description: str
    category: str
    events: List[str]


class IntegrationInstallIn(BaseModel):
    """Config jest nieprzezroczysty, ksztalt zalezy od integracji."""

    config: dict = Field(default_factory=dict)
    is_enabled: bool = True


class IntegrationInstallationOut(BaseModel):
    id: UUID
    store_id: UUID
    integration_id: str
    config: dict
    is_enabled: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class IntegrationEventOut(BaseModel):
    id: UUID
    integration_id: str
    event_type: str
    payload: dict
    status: str
    error: str | None = None
    processed_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
