# app/schemas/upstream.py
"""
Wire payloads of the upstream commerce API.

The upstream API speaks camelCase JSON; these models accept it (and
snake_case, for tests and fixtures) and are translated into the
snake_case domain models by the repositories.
"""
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def _to_str(v: Any) -> Any:
    if v is None:
        return v
    return str(v)


# Upstream ids are numeric, our ids are strings
Identifier = Annotated[str, BeforeValidator(_to_str)]


class UpstreamModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ----- Products -----


class ColorPayload(UpstreamModel):
    id: Identifier
    name: str | None = None
    code: str | None = None
    hex_code: str | None = None


class SizePayload(UpstreamModel):
    id: Identifier
    code: str | None = None
    label: str | None = None
    sort_order: int | None = None


class ImagePayload(UpstreamModel):
    id: Identifier | None = None
    image_url: str
    is_primary: bool = False
    sort_order: int = 0
    color: ColorPayload | None = None


class VariantPayload(UpstreamModel):
    id: Identifier
    sku: str | None = None
    stock_quantity: int | None = None
    is_available: bool = False
    track_inventory: bool = True

    # Prices may arrive as numbers, decimal strings or garbage
    base_price: Any = None
    sale_price: Any = None

    color: ColorPayload | None = None
    size: SizePayload | None = None


class ProductPayload(UpstreamModel):
    id: Identifier
    name: str
    slug: str | None = None
    short_description: str | None = None
    description: str | None = None
    is_active: bool = True
    images: list[ImagePayload] = []
    variants: list[VariantPayload] = []

    @field_validator("images", "variants", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ----- Addresses -----


class AddressPayload(UpstreamModel):
    id: Identifier
    name: str = ""
    phone_number: str | None = None
    address_line1: str = ""
    address_line2: str | None = None
    city: str = ""
    state: str | None = None
    postal_code: str | None = None
    address_type: str | None = None
    is_default: bool = False


class AddressWrite(UpstreamModel):
    name: str | None = None
    phone_number: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    address_type: str | None = None
    is_default: bool | None = None


# ----- Coupons -----


class CouponRef(UpstreamModel):
    code: str | None = None
    type: str | None = None


class CouponValidatePayload(UpstreamModel):
    coupon: CouponRef | None = None
    discount_amount: float | None = None
    remaining_global: int | None = None


class AvailableCouponPayload(UpstreamModel):
    id: Identifier
    code: str
    type: str | None = None
    discount_type: str = "FIXED"
    discount_value: float = 0
    min_order_amount: float | None = None
    max_discount_amount: float | None = None
    global_max_redemptions: int | None = None
    per_user_limit: int | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    is_active: bool = True
    redemptions_count: int | None = None

    @field_validator("discount_type", mode="before")
    @classmethod
    def upper_discount_type(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


# ----- Orders / shipping -----


class ShippingSettingPayload(UpstreamModel):
    free_shipping_threshold: float | None = None
    shipping_fee: float | None = None


class OrderItemPayload(UpstreamModel):
    id: Identifier | None = None
    product_id: Identifier | None = None
    variant_id: Identifier | None = None
    name: str = ""
    image: str | None = None
    color: str | None = None
    size: str | None = None
    price: float = 0
    quantity: int = 1


class OrderAddressPayload(UpstreamModel):
    recipient: str = ""
    street: str = ""
    city: str = ""
    pin: Identifier | None = None
    type: str | None = None
    phone: str | None = None


class PaymentPayload(UpstreamModel):
    method: str | None = None


class OrderPayload(UpstreamModel):
    id: Identifier
    number: Identifier | None = None
    status: str = "Order placed"
    date_placed: str | None = None
    delivery_date: str | None = None
    items: list[OrderItemPayload] = []
    address: OrderAddressPayload | None = None
    payment: PaymentPayload | None = None
    subtotal: float | None = None
    shipping_fee: float | None = None
    taxes: float | None = None
    discount_amount: float | None = None
    total: float = 0
    coupon_code: str | None = None


class OrderDraftItem(UpstreamModel):
    product_id: str
    variant_id: str | None = None
    color_id: str | None = None
    size_id: str | None = None
    quantity: int
    unit_price: float


class OrderDraft(UpstreamModel):
    """
    Payload sent to the order service when placing an order.
    """

    address_id: str
    coupon_code: str | None = None
    items: list[OrderDraftItem]
    subtotal: float
    shipping_fee: float
    taxes: float
    discount_amount: float
    total: float
