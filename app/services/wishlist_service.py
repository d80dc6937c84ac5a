# app/services/wishlist_service.py
from fastapi import HTTPException, status

from app.core.api_client import ApiSession
from app.repositories.cart_repo import WishlistRepository
from app.schemas.wishlist import WishlistRead
from app.services.product_service import ProductService


class WishlistService:
    """
    Business logic for the wishlist (product ids only).

    Products are looked up on add so unknown ids are rejected and the
    stored id is the product's canonical one.
    """

    def __init__(self, product_service: ProductService):
        self.product_service = product_service

    def get_wishlist(self, wishlist: WishlistRepository) -> WishlistRead:
        ids = wishlist.list_ids()
        return WishlistRead(product_ids=ids, count=len(ids))

    def add(self, api: ApiSession, wishlist: WishlistRepository, product_id: str) -> WishlistRead:
        product = self.product_service.get_product(api, product_id)
        wishlist.add(product.id)
        return self.get_wishlist(wishlist)

    def remove(self, wishlist: WishlistRepository, product_id: str) -> WishlistRead:
        if not wishlist.remove(product_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not in wishlist",
            )
        return self.get_wishlist(wishlist)

    def toggle(self, api: ApiSession, wishlist: WishlistRepository, product_id: str) -> WishlistRead:
        """
        Add or remove a product. The product may be named by slug, id or
        backend id; the stored entry is matched on any of them.
        """
        if wishlist.contains(product_id):
            return self.remove(wishlist, product_id)

        product = self.product_service.get_product(api, product_id)
        stored = next((pid for pid in wishlist.list_ids() if product.matches_id(pid)), None)
        if stored is not None:
            return self.remove(wishlist, stored)

        wishlist.add(product.id)
        return self.get_wishlist(wishlist)
