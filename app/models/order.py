# app/models/order.py
from typing import Literal

from sqlmodel import SQLModel, Field

AddressType = Literal["home", "work", "other"]


class Address(SQLModel):
    """
    Saved delivery address (owned by the upstream address book).
    """

    id: str
    name: str
    phone_number: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str = ""
    postal_code: str | None = None
    address_type: AddressType = "home"
    is_default: bool = False

    @property
    def is_complete(self) -> bool:
        return bool(
            self.name.strip()
            and self.address_line1.strip()
            and self.city.strip()
        )


class ShippingSetting(SQLModel):
    """
    Free-shipping threshold and flat fee below it.
    """

    free_shipping_threshold: float = Field(ge=0)
    shipping_fee: float = Field(ge=0)


class OrderItem(SQLModel):
    """
    Line item inside an order, as echoed by the order service.
    """

    id: str | None = None
    product_id: str | None = None
    variant_id: str | None = None
    name: str = ""
    image: str | None = None
    color: str | None = None
    size: str | None = None

    # Unit price at time of order (pre-tax)
    price: float = 0
    quantity: int = Field(default=1, ge=1)


class OrderAddress(SQLModel):
    recipient: str = ""
    street: str = ""
    city: str = ""
    pin: str | None = None
    type: str | None = None
    phone: str | None = None


class Order(SQLModel):
    """
    Customer order created by the upstream order service.

    Holds the server-issued id/status plus the echoed items,
    address and totals.
    """

    id: str
    number: str | None = None

    # Order placed | Processing | Packed | Shipped | Delivered
    status: str = "Order placed"

    date_placed: str | None = None
    delivery_date: str | None = None

    items: list[OrderItem] = Field(default_factory=list)
    address: OrderAddress | None = None

    subtotal: float | None = None
    shipping_fee: float | None = None
    taxes: float | None = None
    discount_amount: float | None = None
    total: float = 0

    coupon_code: str | None = None
    payment_method: str | None = None
