# app/repositories/cart_repo.py
import uuid

from app.models.cart import CartLine
from app.models.product import ProductDetail


class CartRepository:
    """
    In-memory cart for one shopper.

    - Lines keep insertion order; no mutation re-sorts them.
    - Pure storage operations, no business rules.
    """

    def __init__(self) -> None:
        self._lines: list[CartLine] = []

    # Get lines
    def list_lines(self) -> list[CartLine]:
        return list(self._lines)

    def get_line(
        self,
        product_id: str,
        color_id: str | None,
        size_id: str | None,
    ) -> CartLine | None:
        for line in self._lines:
            if line.same_line(product_id, color_id, size_id):
                return line
        return None

    def get_by_id(self, line_id: uuid.UUID) -> CartLine | None:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    # CRUD
    def create(self, line: CartLine) -> CartLine:
        self._lines.append(line)
        return line

    def update_quantity(self, line: CartLine, quantity: int) -> CartLine:
        line.quantity = quantity
        return line

    def replace_product(self, line: CartLine, product: ProductDetail) -> CartLine:
        line.product = product
        return line

    def delete(self, line: CartLine) -> None:
        self._lines = [it for it in self._lines if it.id != line.id]

    def clear(self) -> None:
        self._lines = []

    def remove_ordered(self, ordered: dict[uuid.UUID, int]) -> None:
        """
        Take ordered quantities out of the cart. Lines added after the
        order snapshot are kept, as is any quantity added on top of it.
        """
        kept: list[CartLine] = []
        for line in self._lines:
            if line.id in ordered:
                remaining = line.quantity - ordered[line.id]
                if remaining <= 0:
                    continue
                line.quantity = remaining
            kept.append(line)
        self._lines = kept

    def __len__(self) -> int:
        return len(self._lines)


class WishlistRepository:
    """
    In-memory wishlist for one shopper: product identifiers only,
    in the order they were added.
    """

    def __init__(self) -> None:
        self._ids: list[str] = []

    def list_ids(self) -> list[str]:
        return list(self._ids)

    def contains(self, product_id: str) -> bool:
        return product_id in self._ids

    def add(self, product_id: str) -> None:
        if product_id not in self._ids:
            self._ids.append(product_id)

    def remove(self, product_id: str) -> bool:
        if product_id not in self._ids:
            return False
        self._ids.remove(product_id)
        return True

    def __len__(self) -> int:
        return len(self._ids)
