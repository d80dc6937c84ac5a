# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends

from app.core.api_client import ApiSession, get_api_session
from app.core.state import ShopperState, get_shopper_state
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartRefreshResult,
    CartSummary,
)
from app.services.cart_service import CartService
from app.services.product_service import ProductService

router = APIRouter(prefix="/cart", tags=["Cart"])

product_repo = ProductRepository()
service = CartService(ProductService(product_repo))


@router.get("", response_model=CartSummary)
def get_my_cart(state: ShopperState = Depends(get_shopper_state)):
    """
    Get current shopper's cart summary.

    Auth:
      - Signed-in shoppers only.
    """
    return service.get_cart_summary(state.cart)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Add a product selection to the cart.

    Adding the same product/colour/size again increments the line.
    Adding an unavailable variant leaves the cart unchanged.
    Returns the updated cart summary.
    """
    return service.add_to_cart(api, state.cart, payload)


@router.post("/refresh", response_model=CartRefreshResult)
def refresh_cart(
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Re-fetch the products in the cart and update their snapshots.

    Returns the updated cart and what changed per line.
    """
    return service.refresh_cart(api, state.cart, state.requests)


@router.patch("/{line_id}", response_model=CartSummary)
def update_cart_item(
    line_id: uuid.UUID,
    payload: CartItemUpdate,
    state: ShopperState = Depends(get_shopper_state),
):
    """
    Set quantity of a cart line (below 1 removes it).

    Returns the updated cart summary.
    """
    return service.update_quantity(state.cart, line_id, payload)


@router.delete("/{line_id}", response_model=CartSummary)
def remove_cart_item(
    line_id: uuid.UUID,
    state: ShopperState = Depends(get_shopper_state),
):
    """
    Remove a line from the cart.

    Returns the updated cart summary.
    """
    return service.remove_item(state.cart, line_id)


@router.delete("", response_model=CartSummary)
def clear_cart(state: ShopperState = Depends(get_shopper_state)):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return service.clear_cart(state.cart)
