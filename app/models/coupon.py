# app/models/coupon.py
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel, Field

DiscountType = Literal["PERCENT", "FIXED"]


class CouponValidation(SQLModel):
    """
    Server-confirmed discount for a coupon code at a given order amount.

    discount_amount is trusted verbatim; checkout only clamps it.
    """

    code: str
    discount_amount: float = 0
    type: str | None = None
    message: str | None = None


class AvailableCoupon(SQLModel):
    """
    Coupon offer listed on the checkout page.
    """

    id: str
    code: str
    type: str | None = None
    discount_type: DiscountType = "FIXED"
    discount_value: float = Field(default=0, ge=0)
    min_order_amount: float | None = None
    max_discount_amount: float | None = None
    global_max_redemptions: int | None = None
    per_user_limit: int | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    is_active: bool = True
    redemptions_count: int = 0
