# app/services/checkout_service.py
import logging

from fastapi import HTTPException, status

from app.core.api_client import ApiSession
from app.core.state import ShopperState
from app.models.cart import CartLine
from app.models.checkout import CANCELLABLE_STATES, CheckoutSession, CheckoutState
from app.models.coupon import AvailableCoupon
from app.models.order import Address, ShippingSetting
from app.repositories.address_repo import AddressRepository
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.checkout import (
    AddressBookRead,
    AddressCreate,
    CheckoutRead,
    CheckoutTotals,
)
from app.schemas.upstream import AddressWrite, OrderDraft, OrderDraftItem
from app.services import pricing
from app.services.cart_service import CartService
from app.services.variants import variant_state

logger = logging.getLogger(__name__)

COUPON_NO_LONGER_VALID = "Coupon no longer valid for this cart total."
ORDER_CHANGED = "Order total changed since review. Please review the order again."


def _error_text(e: HTTPException) -> str:
    if isinstance(e.detail, str):
        return e.detail
    if isinstance(e.detail, dict) and isinstance(e.detail.get("message"), str):
        return e.detail["message"]
    return "Failed to place order"


def compute_totals(
    subtotal: float,
    shipping: ShippingSetting,
    tax_rate: float,
    discount: float = 0.0,
) -> CheckoutTotals:
    """
    Combine subtotal, shipping rule, tax and coupon discount.

      - shipping is free for an empty cart or at/above the threshold
      - taxes = subtotal * tax_rate, rounded half-up to whole units
      - discount is clamped to [0, subtotal + shipping_fee]
    """
    if subtotal == 0 or subtotal >= shipping.free_shipping_threshold:
        shipping_fee = 0.0
    else:
        shipping_fee = shipping.shipping_fee

    taxes = pricing.round_half_up(subtotal * tax_rate)
    discount_amount = min(max(discount, 0.0), subtotal + shipping_fee)
    total = subtotal + shipping_fee + taxes - discount_amount

    return CheckoutTotals(
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        taxes=taxes,
        discount_amount=discount_amount,
        total=total,
        free_shipping_threshold=shipping.free_shipping_threshold,
        tax_rate=tax_rate,
    )


class CheckoutService:
    """
    Business logic for the order draft.

    Responsibilities:
      - drive the draft through its states with guards at each step
      - compute totals (shipping threshold, tax, clamped coupon discount)
      - apply / re-validate / remove coupons
      - place the order and take its lines out of the cart only on success
    """

    def __init__(
        self,
        cart_service: CartService,
        address_repo: AddressRepository,
        coupon_repo: CouponRepository,
        order_repo: OrderRepository,
        tax_rate: float,
        fallback_shipping: ShippingSetting,
    ):
        self.cart_service = cart_service
        self.address_repo = address_repo
        self.coupon_repo = coupon_repo
        self.order_repo = order_repo
        self.tax_rate = tax_rate
        self.fallback_shipping = fallback_shipping

    # -------- Helpers --------

    def get_shipping_setting(self, api: ApiSession) -> ShippingSetting:
        """
        Upstream shipping setting, or the configured fallback when it
        cannot be fetched. The fallback keeps totals computable.
        """
        try:
            setting = self.order_repo.get_shipping_setting(api)
        except HTTPException as e:
            logger.warning(f"Shipping settings unavailable ({e.detail}); using fallback")
            return self.fallback_shipping
        return setting or self.fallback_shipping

    def _blocking_reasons(self, state: ShopperState) -> list[str]:
        lines = state.cart.list_lines()
        reasons: list[str] = []

        if not lines:
            reasons.append("Cart is empty")
        if state.checkout.address is None:
            reasons.append("Select a delivery address")
        elif not state.checkout.address.is_complete:
            reasons.append("Delivery address is incomplete")

        for line in lines:
            product = line.product
            if not product.is_active:
                reasons.append(f"{product.name} is no longer available")
                continue
            if not variant_state(product, line.selected_color_id, line.selected_size_id).available:
                reasons.append(f"{product.name} is out of stock for the selected options")

        return reasons

    def _require_not_placing(self, session: CheckoutSession) -> None:
        if session.state == CheckoutState.PLACING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Order is being placed",
            )

    def _require_reviewable(self, session: CheckoutSession) -> None:
        if session.state not in (CheckoutState.ADDRESS_SELECTED, CheckoutState.REVIEWING):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot review order from state '{session.state.value}'",
            )

    def _find_address(self, api: ApiSession, address_id: str) -> Address:
        for address in self.address_repo.list(api):
            if address.id == address_id:
                return address
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found",
        )

    def _require_address_guard(self, state: ShopperState, address: Address) -> None:
        if not address.is_complete:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Delivery address is incomplete",
            )
        if len(state.cart) == 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

    def _revalidate_coupon(self, api: ApiSession, state: ShopperState, subtotal: float) -> None:
        """
        Re-check the applied coupon when the cart total moved since it
        was validated.
        """
        session = state.checkout
        if session.coupon is None or session.coupon_order_amount == subtotal:
            return

        if subtotal == 0:
            session.coupon = None
            session.coupon_order_amount = None
            return

        code = session.coupon.code
        token = state.requests.issue("coupon")
        try:
            validation = self.coupon_repo.validate(api, code, subtotal)
        except HTTPException as e:
            if state.requests.is_current("coupon", token):
                logger.info(f"Coupon {code} dropped after re-validation: {e.detail}")
                session.coupon = None
                session.coupon_order_amount = None
                session.coupon_error = COUPON_NO_LONGER_VALID
            return

        if state.requests.is_current("coupon", token):
            session.coupon = validation
            session.coupon_order_amount = subtotal

    def totals(self, api: ApiSession, state: ShopperState) -> CheckoutTotals:
        subtotal = pricing.cart_subtotal(state.cart.list_lines())
        self._revalidate_coupon(api, state, subtotal)
        coupon = state.checkout.coupon
        return compute_totals(
            subtotal,
            self.get_shipping_setting(api),
            self.tax_rate,
            coupon.discount_amount if coupon else 0.0,
        )

    # -------- Read --------

    def view(self, api: ApiSession, state: ShopperState) -> CheckoutRead:
        """
        Current draft: lines, totals, coupon, guard results.
        """
        session = state.checkout
        totals = self.totals(api, state)
        reasons = self._blocking_reasons(state)

        return CheckoutRead(
            state=session.state,
            address=session.address,
            items=[self.cart_service.line_read(line) for line in state.cart.list_lines()],
            totals=totals,
            coupon=session.coupon,
            coupon_error=session.coupon_error,
            last_error=session.last_error,
            can_confirm=(
                not reasons
                and session.state in (CheckoutState.ADDRESS_SELECTED, CheckoutState.REVIEWING)
            ),
            blocking_reasons=reasons,
            order=session.order,
        )

    # -------- Addresses --------

    def list_addresses(self, api: ApiSession) -> AddressBookRead:
        addresses = self.address_repo.list(api)
        default = next((a for a in addresses if a.is_default), None)
        suggested = default or (addresses[0] if addresses else None)
        return AddressBookRead(
            addresses=addresses,
            suggested_address_id=suggested.id if suggested else None,
        )

    def create_address(self, api: ApiSession, payload: AddressCreate) -> Address:
        return self.address_repo.create(api, AddressWrite(**payload.model_dump()))

    def set_default_address(self, api: ApiSession, address_id: str) -> Address:
        return self.address_repo.set_default(api, address_id)

    # -------- State transitions --------

    def select_address(self, api: ApiSession, state: ShopperState, address_id: str) -> CheckoutRead:
        """
        drafting / address_selected / reviewing -> address_selected.

        A finished (placed or cancelled) draft is replaced by a new one.
        Guard: complete address and a non-empty cart.
        """
        self._require_not_placing(state.checkout)
        address = self._find_address(api, address_id)
        self._require_address_guard(state, address)

        with state.lock:
            session = state.checkout
            self._require_not_placing(session)
            if session.state in (CheckoutState.PLACED, CheckoutState.CANCELLED):
                session = state.reset_checkout()

            session.address = address
            session.state = CheckoutState.ADDRESS_SELECTED
            session.last_error = None
        return self.view(api, state)

    def review(self, api: ApiSession, state: ShopperState) -> CheckoutRead:
        """
        address_selected -> reviewing (confirmation step).

        Re-checks the address guard against the current address book and
        cart, plus every checkout-blocking condition. The total and coupon
        shown here are what place_order will accept.
        """
        session = state.checkout
        self._require_reviewable(session)

        address = self._find_address(api, session.address.id)
        self._require_address_guard(state, address)
        session.address = address

        reasons = self._blocking_reasons(state)
        if reasons:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Checkout blocked", "reasons": reasons},
            )

        with state.lock:
            if state.checkout is not session:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Checkout changed during review",
                )
            self._require_reviewable(session)
            session.state = CheckoutState.REVIEWING
        view = self.view(api, state)
        session.reviewed_total = view.totals.total
        session.reviewed_coupon_code = view.coupon.code if view.coupon else None
        return view

    def cancel(self, api: ApiSession, state: ShopperState) -> CheckoutRead:
        """
        drafting / address_selected / reviewing -> cancelled.
        Nothing from the draft is kept.
        """
        with state.lock:
            session = state.checkout
            if session.state not in CANCELLABLE_STATES:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Cannot cancel order from state '{session.state.value}'",
                )
            state.checkout = CheckoutSession(state=CheckoutState.CANCELLED)
        return self.view(api, state)

    def place_order(self, api: ApiSession, state: ShopperState) -> CheckoutRead:
        """
        reviewing -> placing -> placed | reviewing.

        Steps:
          1. Claim the draft (reviewing -> placing) under the shopper lock;
             a concurrent or repeated submit gets 409.
          2. Re-check blocking conditions and recompute totals.
          3. Refuse if the total or coupon differs from what was reviewed.
          4. Create the order upstream.
          5. On success: remove the ordered quantities, clear the coupon, attach
             the order. On failure: back to reviewing, cart untouched,
             error raised.
        """
        with state.lock:
            session = state.checkout
            if session.state != CheckoutState.REVIEWING:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Cannot place order from state '{session.state.value}'",
                )
            session.state = CheckoutState.PLACING
            session.last_error = None

        try:
            reasons = self._blocking_reasons(state)
            if reasons:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={"message": "Checkout blocked", "reasons": reasons},
                )

            lines = state.cart.list_lines()
            ordered = {line.id: line.quantity for line in lines}
            totals = self.totals(api, state)
            coupon = session.coupon
            coupon_code = coupon.code if coupon else None
            if totals.total != session.reviewed_total or coupon_code != session.reviewed_coupon_code:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=ORDER_CHANGED,
                )

            draft = self._build_draft(state, lines, totals)
            order = self.order_repo.create_order(api, draft)
        except HTTPException as e:
            session.state = CheckoutState.REVIEWING
            session.last_error = _error_text(e)
            logger.error(f"Order placement failed: {e.detail}")
            raise

        state.cart.remove_ordered(ordered)
        session.coupon = None
        session.coupon_order_amount = None
        session.coupon_error = None
        session.reviewed_total = None
        session.reviewed_coupon_code = None
        session.order = order
        session.state = CheckoutState.PLACED
        logger.info(f"Order {order.id} placed ({totals.total})")
        return self.view(api, state)

    def _build_draft(
        self,
        state: ShopperState,
        lines: list[CartLine],
        totals: CheckoutTotals,
    ) -> OrderDraft:
        items: list[OrderDraftItem] = []
        for line in lines:
            resolved = variant_state(line.product, line.selected_color_id, line.selected_size_id)
            items.append(
                OrderDraftItem(
                    product_id=line.product.backend_id or line.product.id,
                    variant_id=resolved.variant.id if resolved.variant else None,
                    color_id=line.selected_color_id,
                    size_id=line.selected_size_id,
                    quantity=line.quantity,
                    unit_price=pricing.line_unit_price(line),
                )
            )

        coupon = state.checkout.coupon
        return OrderDraft(
            address_id=state.checkout.address.id,
            coupon_code=coupon.code if coupon else None,
            items=items,
            subtotal=totals.subtotal,
            shipping_fee=totals.shipping_fee,
            taxes=totals.taxes,
            discount_amount=totals.discount_amount,
            total=totals.total,
        )

    # -------- Coupons --------

    def apply_coupon(self, api: ApiSession, state: ShopperState, code: str) -> CheckoutRead:
        """
        Validate a code upstream against the current subtotal.

        Failures are raised (never a silent zero discount). A validation
        that finishes after a newer one was started is discarded.
        """
        session = state.checkout
        self._require_not_placing(session)

        code = code.strip()
        if not code:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Enter a coupon code.",
            )

        subtotal = pricing.cart_subtotal(state.cart.list_lines())
        if subtotal <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Add items to cart before applying a coupon.",
            )

        token = state.requests.issue("coupon")
        try:
            validation = self.coupon_repo.validate(api, code, subtotal)
        except HTTPException as e:
            if state.requests.is_current("coupon", token):
                session.coupon = None
                session.coupon_order_amount = None
                session.coupon_error = e.detail if isinstance(e.detail, str) else "Unable to apply coupon."
            raise

        if not state.requests.is_current("coupon", token):
            logger.info(f"Discarding superseded validation of coupon {code}")
            return self.view(api, state)

        session.coupon = validation
        session.coupon_order_amount = subtotal
        session.coupon_error = None
        return self.view(api, state)

    def remove_coupon(self, api: ApiSession, state: ShopperState) -> CheckoutRead:
        session = state.checkout
        self._require_not_placing(session)
        # Invalidate any validation still in flight
        state.requests.issue("coupon")
        session.coupon = None
        session.coupon_order_amount = None
        session.coupon_error = None
        return self.view(api, state)

    def list_coupons(self, api: ApiSession) -> list[AvailableCoupon]:
        """
        Offers shown next to the coupon field. Display only: a failure
        yields an empty list.
        """
        try:
            return self.coupon_repo.list_available(api)
        except HTTPException as e:
            logger.warning(f"Failed to load coupons: {e.detail}")
            return []
