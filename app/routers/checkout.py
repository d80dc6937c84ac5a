# app/routers/checkout.py
from fastapi import APIRouter, Depends

from app.core.api_client import ApiSession, get_api_session
from app.core.config import get_settings
from app.core.state import ShopperState, get_shopper_state
from app.models.coupon import AvailableCoupon
from app.models.order import Address, ShippingSetting
from app.repositories.address_repo import AddressRepository
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.checkout import (
    AddressBookRead,
    AddressCreate,
    ApplyCouponRequest,
    CheckoutRead,
    SelectAddressRequest,
)
from app.services.cart_service import CartService
from app.services.checkout_service import CheckoutService
from app.services.product_service import ProductService

router = APIRouter(prefix="/checkout", tags=["Checkout"])

settings = get_settings()

service = CheckoutService(
    cart_service=CartService(ProductService(ProductRepository())),
    address_repo=AddressRepository(),
    coupon_repo=CouponRepository(),
    order_repo=OrderRepository(),
    tax_rate=settings.TAX_RATE,
    fallback_shipping=ShippingSetting(
        free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
        shipping_fee=settings.DEFAULT_SHIPPING_FEE,
    ),
)


# -------- Draft --------


@router.get("", response_model=CheckoutRead)
def get_checkout(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Current order draft: lines, totals, coupon and whether the
    shopper can confirm.
    """
    return service.view(api, state)


@router.post("/address", response_model=CheckoutRead)
def select_address(
    payload: SelectAddressRequest,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Choose the delivery address (drafting -> address_selected).

    400 if the address is incomplete or the cart is empty.
    """
    return service.select_address(api, state, payload.address_id)


@router.post("/review", response_model=CheckoutRead)
def review_order(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Open the confirmation step (address_selected -> reviewing).
    """
    return service.review(api, state)


@router.post("/cancel", response_model=CheckoutRead)
def cancel_checkout(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Dismiss the draft. Allowed any time before placing.
    """
    return service.cancel(api, state)


@router.post("/place", response_model=CheckoutRead)
def place_order(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Create the order (reviewing -> placed).

    On success the cart is cleared and the order is attached.
    On failure the draft returns to reviewing with the cart untouched.
    """
    return service.place_order(api, state)


# -------- Coupons --------


@router.post("/coupon", response_model=CheckoutRead)
def apply_coupon(
    payload: ApplyCouponRequest,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Validate and apply a coupon code against the current subtotal.
    """
    return service.apply_coupon(api, state, payload.code)


@router.delete("/coupon", response_model=CheckoutRead)
def remove_coupon(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    return service.remove_coupon(api, state)


@router.get("/coupons", response_model=list[AvailableCoupon])
def list_coupons(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Coupons currently offered to the shopper.
    """
    return service.list_coupons(api)


# -------- Addresses --------


@router.get("/addresses", response_model=AddressBookRead)
def list_addresses(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Saved addresses and the one to preselect.
    """
    return service.list_addresses(api)


@router.post("/addresses", response_model=Address)
def create_address(
    payload: AddressCreate,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    return service.create_address(api, payload)


@router.post("/addresses/{address_id}/default", response_model=Address)
def set_default_address(
    address_id: str,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    return service.set_default_address(api, address_id)
