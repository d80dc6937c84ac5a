# app/schemas/checkout.py
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.checkout import CheckoutState
from app.models.coupon import CouponValidation
from app.models.order import Address, AddressType, Order
from app.schemas.cart import CartLineRead


class CheckoutTotals(SQLModel):
    """
    Totals of an order draft. Recomputed on every read, never stored.

    total = subtotal + shipping_fee + taxes - discount_amount
    """

    subtotal: float
    shipping_fee: float
    taxes: float
    discount_amount: float
    total: float

    free_shipping_threshold: float
    tax_rate: float


class CheckoutRead(SQLModel):
    """
    Current order draft as the checkout page renders it.
    """

    state: CheckoutState
    address: Address | None = None
    items: list[CartLineRead]
    totals: CheckoutTotals

    coupon: CouponValidation | None = None
    coupon_error: str | None = None

    # Set when the last placement attempt failed
    last_error: str | None = None

    can_confirm: bool
    blocking_reasons: list[str] = Field(default_factory=list)

    order: Order | None = None


class SelectAddressRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    address_id: str

    @field_validator("address_id", mode="before")
    @classmethod
    def not_empty(cls, v: Any) -> str:
        v = str(v).strip() if v is not None else ""
        if not v:
            raise ValueError("address_id cannot be empty")
        return v


class ApplyCouponRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    code: str

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip()


class AddressCreate(SQLModel):
    """
    Payload for saving a new delivery address.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    phone_number: str | None = None
    address_line1: str = Field(max_length=255)
    address_line2: str | None = None
    city: str = Field(max_length=100)
    state: str | None = None
    postal_code: str | None = None
    address_type: AddressType = "home"
    is_default: bool = False

    @field_validator("name", "address_line1", "city")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("phone_number", "address_line2", "state", "postal_code")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class AddressBookRead(SQLModel):
    """
    Saved addresses plus the one checkout should preselect
    (the default address, else the first).
    """

    addresses: list[Address]
    suggested_address_id: str | None = None
