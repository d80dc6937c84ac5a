# app/models/checkout.py
from enum import Enum

from sqlmodel import SQLModel

from app.models.coupon import CouponValidation
from app.models.order import Address, Order


class CheckoutState(str, Enum):
    """
    Order draft lifecycle:

      drafting         -> address_selected, cancelled
      address_selected -> reviewing, cancelled
      reviewing        -> placing, cancelled
      placing          -> placed, reviewing (on failure)
      placed           -> (terminal)
      cancelled        -> (terminal)
    """

    DRAFTING = "drafting"
    ADDRESS_SELECTED = "address_selected"
    REVIEWING = "reviewing"
    PLACING = "placing"
    PLACED = "placed"
    CANCELLED = "cancelled"


CANCELLABLE_STATES = {
    CheckoutState.DRAFTING,
    CheckoutState.ADDRESS_SELECTED,
    CheckoutState.REVIEWING,
}


class CheckoutSession(SQLModel):
    """
    One shopper's order draft. Never persisted.

    coupon_order_amount is the subtotal the coupon was validated
    against; a different subtotal triggers re-validation.

    An order is placed only at the total and coupon recorded by the
    last review.
    """

    state: CheckoutState = CheckoutState.DRAFTING

    address: Address | None = None

    coupon: CouponValidation | None = None
    coupon_order_amount: float | None = None
    coupon_error: str | None = None

    # What the shopper confirmed at the review step
    reviewed_total: float | None = None
    reviewed_coupon_code: str | None = None

    last_error: str | None = None
    order: Order | None = None
