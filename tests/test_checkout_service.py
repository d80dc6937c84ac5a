"""Tests for the checkout draft state machine and coupon handling."""

import threading
import time
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from conftest import make_product

from app.models.checkout import CheckoutState
from app.models.coupon import AvailableCoupon, CouponValidation
from app.models.order import Address, Order, ShippingSetting
from app.services.cart_service import CartService
from app.services.checkout_service import COUPON_NO_LONGER_VALID, ORDER_CHANGED, CheckoutService

API = object()


def make_address(id="1", name="Asha Rao", line1="12 Lake Road", city="Pune", is_default=False):
    return Address(id=id, name=name, address_line1=line1, city=city, is_default=is_default)


@pytest.fixture
def cart_service():
    return CartService(MagicMock())


@pytest.fixture
def repos():
    address_repo = MagicMock()
    address_repo.list.return_value = [make_address()]

    coupon_repo = MagicMock()
    coupon_repo.validate.return_value = CouponValidation(code="TEN", discount_amount=260)

    order_repo = MagicMock()
    order_repo.get_shipping_setting.return_value = ShippingSetting(
        free_shipping_threshold=1999, shipping_fee=89
    )
    order_repo.create_order.return_value = Order(id="9000", total=2470)

    return address_repo, coupon_repo, order_repo


@pytest.fixture
def service(cart_service, repos):
    address_repo, coupon_repo, order_repo = repos
    return CheckoutService(
        cart_service=cart_service,
        address_repo=address_repo,
        coupon_repo=coupon_repo,
        order_repo=order_repo,
        tax_rate=0.05,
        fallback_shipping=ShippingSetting(free_shipping_threshold=1999, shipping_fee=0),
    )


@pytest.fixture
def state(shopper_state, cart_service):
    # 800 x 2 + 1000 x 1 = 2600
    cart_service.add_product(shopper_state.cart, make_product(id="a", price=800), "1", "2", 2)
    cart_service.add_product(shopper_state.cart, make_product(id="b", price=1000), "1", "2", 1)
    return shopper_state


def to_reviewing(service, state):
    service.select_address(API, state, "1")
    return service.review(API, state)


class TestTotals:
    def test_end_to_end(self, service, state):
        view = service.view(API, state)
        assert view.totals.subtotal == 2600
        assert view.totals.shipping_fee == 0
        assert view.totals.taxes == 130
        assert view.totals.total == 2730

        view = service.apply_coupon(API, state, "TEN")
        assert view.totals.discount_amount == 260
        assert view.totals.total == 2470

    def test_shipping_fallback(self, service, state, repos):
        _, _, order_repo = repos
        order_repo.get_shipping_setting.side_effect = HTTPException(status_code=502, detail="down")

        setting = service.get_shipping_setting(API)
        assert setting.free_shipping_threshold == 1999
        assert setting.shipping_fee == 0

    def test_shipping_fallback_when_unset(self, service, repos):
        _, _, order_repo = repos
        order_repo.get_shipping_setting.return_value = None
        assert service.get_shipping_setting(API).free_shipping_threshold == 1999

    def test_blocking_reasons_before_confirm(self, service, shopper_state):
        view = service.view(API, shopper_state)
        assert not view.can_confirm
        assert "Cart is empty" in view.blocking_reasons
        assert "Select a delivery address" in view.blocking_reasons


class TestStateMachine:
    def test_happy_path(self, service, state, repos):
        _, _, order_repo = repos

        view = service.select_address(API, state, "1")
        assert view.state == CheckoutState.ADDRESS_SELECTED
        assert view.can_confirm

        view = service.review(API, state)
        assert view.state == CheckoutState.REVIEWING

        view = service.place_order(API, state)
        assert view.state == CheckoutState.PLACED
        assert view.order.id == "9000"
        assert len(state.cart) == 0

        draft = order_repo.create_order.call_args.args[1]
        assert draft.address_id == "1"
        assert draft.total == 2730
        assert [(it.product_id, it.quantity, it.unit_price) for it in draft.items] == [
            ("b-a", 2, 800),
            ("b-b", 1, 1000),
        ]

    def test_placement_failure_keeps_cart(self, service, state, repos):
        _, _, order_repo = repos
        order_repo.create_order.side_effect = HTTPException(status_code=400, detail="Payment declined")
        to_reviewing(service, state)

        with pytest.raises(HTTPException):
            service.place_order(API, state)

        assert state.checkout.state == CheckoutState.REVIEWING
        assert state.checkout.last_error == "Payment declined"
        assert len(state.cart) == 2

    def test_coupon_sent_with_order(self, service, state, repos):
        _, _, order_repo = repos
        service.apply_coupon(API, state, "TEN")
        to_reviewing(service, state)

        view = service.place_order(API, state)

        draft = order_repo.create_order.call_args.args[1]
        assert draft.coupon_code == "TEN"
        assert draft.discount_amount == 260
        assert view.coupon is None

    def test_select_requires_cart(self, service, shopper_state):
        with pytest.raises(HTTPException) as exc:
            service.select_address(API, shopper_state, "1")
        assert exc.value.status_code == 400

    def test_select_requires_complete_address(self, service, state, repos):
        address_repo, _, _ = repos
        address_repo.list.return_value = [make_address(city="  ")]

        with pytest.raises(HTTPException) as exc:
            service.select_address(API, state, "1")
        assert exc.value.status_code == 400
        assert state.checkout.state == CheckoutState.DRAFTING

    def test_unknown_address(self, service, state):
        with pytest.raises(HTTPException) as exc:
            service.select_address(API, state, "404")
        assert exc.value.status_code == 404

    def test_review_rechecks_cart(self, service, state):
        service.select_address(API, state, "1")
        state.cart.clear()

        with pytest.raises(HTTPException) as exc:
            service.review(API, state)
        assert exc.value.status_code == 400
        assert state.checkout.state == CheckoutState.ADDRESS_SELECTED

    def test_review_blocks_inactive_product(self, service, state):
        service.select_address(API, state, "1")
        state.cart.list_lines()[0].product.is_active = False

        with pytest.raises(HTTPException) as exc:
            service.review(API, state)
        assert "A is no longer available" in exc.value.detail["reasons"]

    def test_review_from_drafting(self, service, state):
        with pytest.raises(HTTPException) as exc:
            service.review(API, state)
        assert exc.value.status_code == 409

    def test_place_requires_review(self, service, state):
        service.select_address(API, state, "1")
        with pytest.raises(HTTPException) as exc:
            service.place_order(API, state)
        assert exc.value.status_code == 409

    def test_cancel_discards_draft(self, service, state):
        service.apply_coupon(API, state, "TEN")
        to_reviewing(service, state)

        view = service.cancel(API, state)

        assert view.state == CheckoutState.CANCELLED
        assert view.address is None
        assert view.coupon is None
        assert len(state.cart) == 2

    def test_cancel_after_placed(self, service, state):
        to_reviewing(service, state)
        service.place_order(API, state)

        with pytest.raises(HTTPException) as exc:
            service.cancel(API, state)
        assert exc.value.status_code == 409

    def test_new_draft_after_cancel(self, service, state):
        service.cancel(API, state)
        view = service.select_address(API, state, "1")
        assert view.state == CheckoutState.ADDRESS_SELECTED


class TestPlacement:
    def test_concurrent_submit_places_once(self, service, state, repos):
        _, _, order_repo = repos
        to_reviewing(service, state)

        def slow_shipping(api):
            time.sleep(0.2)
            return ShippingSetting(free_shipping_threshold=1999, shipping_fee=89)

        order_repo.get_shipping_setting.side_effect = slow_shipping
        results = []

        def submit():
            try:
                results.append(service.place_order(API, state).state)
            except HTTPException as e:
                results.append(e.status_code)

        threads = [threading.Thread(target=submit) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 2
        assert results.count(409) == 1
        assert CheckoutState.PLACED in results
        order_repo.create_order.assert_called_once()

    def test_submit_while_placing_conflicts(self, service, state, repos):
        _, _, order_repo = repos
        to_reviewing(service, state)
        state.checkout.state = CheckoutState.PLACING

        with pytest.raises(HTTPException) as exc:
            service.place_order(API, state)
        assert exc.value.status_code == 409
        order_repo.create_order.assert_not_called()

    def test_line_added_while_placing_is_kept(self, service, state, repos, cart_service):
        _, _, order_repo = repos
        to_reviewing(service, state)

        def create_order(api, draft):
            cart_service.add_product(state.cart, make_product(id="late", price=500), "1", "2", 1)
            return Order(id="9000", total=draft.total)

        order_repo.create_order.side_effect = create_order

        view = service.place_order(API, state)

        assert view.state == CheckoutState.PLACED
        assert [line.product.id for line in state.cart.list_lines()] == ["late"]
        draft = order_repo.create_order.call_args.args[1]
        assert [it.product_id for it in draft.items] == ["b-a", "b-b"]

    def test_quantity_added_while_placing_is_kept(self, service, state, repos):
        _, _, order_repo = repos
        to_reviewing(service, state)

        def create_order(api, draft):
            line = state.cart.list_lines()[0]
            state.cart.update_quantity(line, line.quantity + 1)
            return Order(id="9000", total=draft.total)

        order_repo.create_order.side_effect = create_order

        service.place_order(API, state)

        lines = state.cart.list_lines()
        assert [(line.product.id, line.quantity) for line in lines] == [("a", 1)]

    def test_dropped_coupon_blocks_placement(self, service, state, repos):
        _, coupon_repo, order_repo = repos
        service.apply_coupon(API, state, "TEN")
        to_reviewing(service, state)

        line = state.cart.list_lines()[0]
        state.cart.update_quantity(line, 3)
        coupon_repo.validate.side_effect = HTTPException(status_code=400, detail="Usage limit reached")

        with pytest.raises(HTTPException) as exc:
            service.place_order(API, state)

        assert exc.value.status_code == 400
        assert exc.value.detail == ORDER_CHANGED
        assert state.checkout.state == CheckoutState.REVIEWING
        assert state.checkout.coupon is None
        assert state.checkout.coupon_error == COUPON_NO_LONGER_VALID
        assert state.checkout.last_error == ORDER_CHANGED
        order_repo.create_order.assert_not_called()

    def test_placed_after_second_review(self, service, state, repos):
        _, _, order_repo = repos
        to_reviewing(service, state)
        line = state.cart.list_lines()[0]
        state.cart.update_quantity(line, 3)

        with pytest.raises(HTTPException):
            service.place_order(API, state)

        # 800 x 3 + 1000 = 3400, free shipping, 170 tax
        assert service.review(API, state).totals.total == 3570
        view = service.place_order(API, state)

        assert view.state == CheckoutState.PLACED
        assert order_repo.create_order.call_args.args[1].total == 3570

    def test_blocked_placement_returns_to_review(self, service, state, repos):
        _, _, order_repo = repos
        to_reviewing(service, state)
        state.cart.list_lines()[1].product.is_active = False

        with pytest.raises(HTTPException) as exc:
            service.place_order(API, state)

        assert exc.value.status_code == 400
        assert state.checkout.state == CheckoutState.REVIEWING
        assert state.checkout.last_error == "Checkout blocked"
        order_repo.create_order.assert_not_called()


class TestCoupons:
    def test_rejected_code_surfaces(self, service, state, repos):
        _, coupon_repo, _ = repos
        coupon_repo.validate.side_effect = HTTPException(status_code=400, detail="Coupon expired")

        with pytest.raises(HTTPException) as exc:
            service.apply_coupon(API, state, "OLD")

        assert exc.value.detail == "Coupon expired"
        assert state.checkout.coupon is None
        assert state.checkout.coupon_error == "Coupon expired"

    def test_empty_code(self, service, state):
        with pytest.raises(HTTPException) as exc:
            service.apply_coupon(API, state, "   ")
        assert exc.value.detail == "Enter a coupon code."

    def test_empty_cart(self, service, shopper_state):
        with pytest.raises(HTTPException) as exc:
            service.apply_coupon(API, shopper_state, "TEN")
        assert exc.value.status_code == 400

    def test_validated_against_subtotal(self, service, state, repos):
        _, coupon_repo, _ = repos
        service.apply_coupon(API, state, " TEN ")
        coupon_repo.validate.assert_called_once_with(API, "TEN", 2600)

    def test_superseded_validation_discarded(self, service, state, repos):
        _, coupon_repo, _ = repos

        def validate(api, code, amount):
            state.requests.issue("coupon")
            return CouponValidation(code=code, discount_amount=999)

        coupon_repo.validate.side_effect = validate

        view = service.apply_coupon(API, state, "SLOW")
        assert view.coupon is None
        assert view.totals.discount_amount == 0

    def test_revalidated_when_cart_changes(self, service, state, repos):
        _, coupon_repo, _ = repos
        service.apply_coupon(API, state, "TEN")

        line = state.cart.list_lines()[0]
        state.cart.update_quantity(line, 3)
        coupon_repo.validate.return_value = CouponValidation(code="TEN", discount_amount=340)

        view = service.view(API, state)

        coupon_repo.validate.assert_called_with(API, "TEN", 3400)
        assert view.totals.discount_amount == 340

    def test_dropped_when_no_longer_valid(self, service, state, repos):
        _, coupon_repo, _ = repos
        service.apply_coupon(API, state, "TEN")

        state.cart.delete(state.cart.list_lines()[0])
        coupon_repo.validate.side_effect = HTTPException(status_code=400, detail="Minimum order not met")

        view = service.view(API, state)

        assert view.coupon is None
        assert view.coupon_error == COUPON_NO_LONGER_VALID
        assert view.totals.discount_amount == 0

    def test_remove_coupon(self, service, state):
        service.apply_coupon(API, state, "TEN")
        view = service.remove_coupon(API, state)
        assert view.coupon is None
        assert view.totals.total == 2730

    def test_list_coupons_failure_is_empty(self, service, repos):
        _, coupon_repo, _ = repos
        coupon_repo.list_available.side_effect = HTTPException(status_code=502, detail="down")
        assert service.list_coupons(API) == []

    def test_list_coupons(self, service, repos):
        _, coupon_repo, _ = repos
        coupon_repo.list_available.return_value = [AvailableCoupon(id="1", code="TEN")]
        assert [c.code for c in service.list_coupons(API)] == ["TEN"]


class TestAddresses:
    def test_suggests_default(self, service, repos):
        address_repo, _, _ = repos
        address_repo.list.return_value = [make_address(id="1"), make_address(id="2", is_default=True)]
        assert service.list_addresses(API).suggested_address_id == "2"

    def test_suggests_first_without_default(self, service):
        assert service.list_addresses(API).suggested_address_id == "1"

    def test_empty_book(self, service, repos):
        address_repo, _, _ = repos
        address_repo.list.return_value = []
        assert service.list_addresses(API).suggested_address_id is None
