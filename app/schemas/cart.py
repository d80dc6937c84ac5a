# app/schemas/cart.py
import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _optional_id(v: Any) -> str | None:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    color_id / size_id may be omitted when the product has no such axis
    or the shopper has not chosen yet.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str
    color_id: str | None = None
    size_id: str | None = None
    quantity: int = 1

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v: Any) -> str:
        v = _optional_id(v)
        if v is None:
            raise ValueError("product_id cannot be empty")
        return v

    @field_validator("color_id", "size_id", mode="before")
    @classmethod
    def normalize_option_id(cls, v: Any) -> str | None:
        return _optional_id(v)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart line.
    A quantity below 1 removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, with the resolved variant's
    stock state and the line total.
    """

    id: uuid.UUID
    product_id: str
    product_name: str
    sku: str | None = None
    image: str | None = None

    color_id: str | None = None
    color_name: str | None = None
    size_id: str | None = None
    size_name: str | None = None

    quantity: int
    unit_price: float
    original_price: float
    discount_percent: int | None = None
    line_total: float

    variant_id: str | None = None
    stock_quantity: int
    is_available: bool
    at_stock_limit: bool
    can_increase: bool

    added_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total_items: int
    subtotal: float


class CartLineChange(SQLModel):
    """
    What a cart refresh changed on one line.
    """

    line_id: uuid.UUID
    product_id: str
    previous_price: float
    current_price: float
    price_changed: bool
    is_available: bool
    missing: bool = Field(default=False, description="Product no longer exists upstream")


class CartRefreshResult(SQLModel):
    cart: CartSummary
    changes: list[CartLineChange]
    applied: bool = Field(
        default=True,
        description="False when a newer refresh superseded this one",
    )
