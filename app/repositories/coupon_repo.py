# app/repositories/coupon_repo.py
from fastapi import HTTPException, status

from app.core.api_client import ApiSession, unwrap
from app.models.coupon import AvailableCoupon, CouponValidation
from app.schemas.upstream import AvailableCouponPayload, CouponValidatePayload


class CouponRepository:
    """
    Data access layer for upstream coupons.

    Validity and discount math are owned by the coupon service upstream;
    an invalid / expired / ineligible code comes back as an error.
    """

    def validate(self, api: ApiSession, code: str, order_amount: float) -> CouponValidation:
        data = unwrap(
            api.post("/coupons/validate", {"code": code, "orderAmount": order_amount}),
            "Coupon is not valid",
        )
        payload = CouponValidatePayload.model_validate(data or {})
        if payload.discount_amount is None:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Coupon service returned an invalid response",
            )

        if "remaining_global" in payload.model_fields_set:
            remaining = payload.remaining_global if payload.remaining_global is not None else "unlimited"
            message = f"Applied. Remaining uses: {remaining}."
        else:
            message = "Coupon applied."

        return CouponValidation(
            code=(payload.coupon.code if payload.coupon and payload.coupon.code else code),
            discount_amount=payload.discount_amount,
            type=payload.coupon.type if payload.coupon else None,
            message=message,
        )

    def list_available(self, api: ApiSession) -> list[AvailableCoupon]:
        data = unwrap(api.get("/coupons/available"), "Failed to load coupons")
        coupons: list[AvailableCoupon] = []
        for it in data or []:
            raw = AvailableCouponPayload.model_validate(it)
            coupons.append(AvailableCoupon.model_validate(raw.model_dump(exclude_none=True)))
        return coupons
