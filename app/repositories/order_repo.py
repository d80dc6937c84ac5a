# app/repositories/order_repo.py
from urllib.parse import quote

from app.core.api_client import ApiSession, unwrap
from app.models.order import Order, OrderAddress, OrderItem, ShippingSetting
from app.schemas.upstream import OrderDraft, OrderPayload, ShippingSettingPayload


def to_order(raw: OrderPayload) -> Order:
    return Order(
        id=raw.id,
        number=raw.number,
        status=raw.status,
        date_placed=raw.date_placed,
        delivery_date=raw.delivery_date,
        items=[
            OrderItem(
                id=it.id,
                product_id=it.product_id,
                variant_id=it.variant_id,
                name=it.name,
                image=it.image,
                color=it.color,
                size=it.size,
                price=it.price,
                quantity=max(it.quantity, 1),
            )
            for it in raw.items
        ],
        address=(
            OrderAddress.model_validate(raw.address.model_dump())
            if raw.address
            else None
        ),
        subtotal=raw.subtotal,
        shipping_fee=raw.shipping_fee,
        taxes=raw.taxes,
        discount_amount=raw.discount_amount,
        total=raw.total,
        coupon_code=raw.coupon_code,
        payment_method=raw.payment.method if raw.payment else None,
    )


class OrderRepository:
    """
    Data access layer for upstream orders and shipping settings.

    NOTE:
      - Order creation is a single upstream call; the checkout service
        decides what happens to the cart around it.
    """

    # ---- Orders ----

    def list_for_user(self, api: ApiSession) -> list[Order]:
        data = unwrap(api.get("/orders"), "Failed to load orders")
        return [to_order(OrderPayload.model_validate(it)) for it in data or []]

    def get_by_id(self, api: ApiSession, order_id: str) -> Order:
        data = unwrap(api.get(f"/orders/{quote(order_id, safe='')}"), "Failed to load order")
        return to_order(OrderPayload.model_validate(data))

    def create_order(self, api: ApiSession, draft: OrderDraft) -> Order:
        body = draft.model_dump(by_alias=True)
        data = unwrap(api.post("/orders", body), "Failed to create order")
        return to_order(OrderPayload.model_validate(data))

    # ---- Shipping ----

    def get_shipping_setting(self, api: ApiSession) -> ShippingSetting | None:
        """
        Returns None when the endpoint answers without a setting.
        Network and HTTP failures propagate.
        """
        data = unwrap(api.get("/orders/shipping-settings"), "Failed to load shipping settings")
        if not data:
            return None
        raw = ShippingSettingPayload.model_validate(data)
        if raw.free_shipping_threshold is None or raw.shipping_fee is None:
            return None
        return ShippingSetting(
            free_shipping_threshold=raw.free_shipping_threshold,
            shipping_fee=raw.shipping_fee,
        )
