# app/schemas/wishlist.py
from sqlmodel import SQLModel


class WishlistRead(SQLModel):
    """
    Wishlist contents: product identifiers in the order they were added.
    """

    product_ids: list[str]
    count: int
