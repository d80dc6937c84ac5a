# app/routers/wishlist.py
from fastapi import APIRouter, Depends

from app.core.api_client import ApiSession, get_api_session
from app.core.state import ShopperState, get_shopper_state
from app.repositories.product_repo import ProductRepository
from app.schemas.wishlist import WishlistRead
from app.services.product_service import ProductService
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

service = WishlistService(ProductService(ProductRepository()))


@router.get("", response_model=WishlistRead)
def get_my_wishlist(state: ShopperState = Depends(get_shopper_state)):
    return service.get_wishlist(state.wishlist)


@router.post("/{product_id}", response_model=WishlistRead)
def add_to_wishlist(
    product_id: str,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Add a product to the wishlist. 404 if the product does not exist.
    """
    return service.add(api, state.wishlist, product_id)


@router.delete("/{product_id}", response_model=WishlistRead)
def remove_from_wishlist(
    product_id: str,
    state: ShopperState = Depends(get_shopper_state),
):
    return service.remove(state.wishlist, product_id)


@router.post("/{product_id}/toggle", response_model=WishlistRead)
def toggle_wishlist(
    product_id: str,
    state: ShopperState = Depends(get_shopper_state),
    api: ApiSession = Depends(get_api_session),
):
    """
    Add the product if absent, remove it if present.
    """
    return service.toggle(api, state.wishlist, product_id)
