# app/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status

from app.core.api_client import ApiSession
from app.core.state import RequestTracker
from app.models.cart import CartLine
from app.models.product import ProductDetail
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartLineChange,
    CartLineRead,
    CartRefreshResult,
    CartSummary,
)
from app.services import pricing
from app.services.product_service import ProductService
from app.services.variants import variant_state

logger = logging.getLogger(__name__)


def line_image(product: ProductDetail, color_id: str | None) -> str | None:
    """
    First gallery image of the selected colour, else the first gallery
    image, else the primary image.
    """
    if color_id is not None:
        for media in product.gallery:
            if media.color_id == color_id:
                return media.src
    if product.gallery:
        return product.gallery[0].src
    return product.images.primary or None


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - merge adds of the same (product, colour, size) into one line
      - ignore adds for an unavailable variant / inactive product
      - keep the product snapshot taken at add time
      - derive stock ceilings per line from that snapshot
      - compute line totals and cart totals
    """

    def __init__(self, product_service: ProductService):
        self.product_service = product_service

    # ---- read helpers ----

    def line_read(self, line: CartLine) -> CartLineRead:
        product = line.product
        state = variant_state(product, line.selected_color_id, line.selected_size_id)
        unit_price = pricing.line_unit_price(line)

        color = next((c for c in product.colors if c.id == line.selected_color_id), None)
        size = next((s for s in product.sizes if s.id == line.selected_size_id), None)

        return CartLineRead(
            id=line.id,
            product_id=product.id,
            product_name=product.name,
            sku=state.variant.sku if state.variant and state.variant.sku else product.sku,
            image=line_image(product, line.selected_color_id),
            color_id=line.selected_color_id,
            color_name=color.name if color else None,
            size_id=line.selected_size_id,
            size_name=size.name if size else None,
            quantity=line.quantity,
            unit_price=unit_price,
            original_price=product.original,
            discount_percent=pricing.discount_percent(unit_price, product.original),
            line_total=pricing.line_total(line),
            variant_id=state.variant.id if state.variant else None,
            stock_quantity=state.stock_quantity,
            is_available=state.available,
            at_stock_limit=state.at_stock_limit(line.quantity),
            can_increase=state.can_increase(line.quantity),
            added_at=line.added_at,
        )

    def _get_line(self, cart: CartRepository, line_id: uuid.UUID) -> CartLine:
        line = cart.get_by_id(line_id)
        if not line:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in cart",
            )
        return line

    # ---- public operations ----

    def get_cart_summary(self, cart: CartRepository) -> CartSummary:
        """
        Return full cart summary:
          - list of CartLineRead (with line_total and stock state)
          - total_items
          - subtotal
        """
        lines = cart.list_lines()
        return CartSummary(
            items=[self.line_read(line) for line in lines],
            total_items=pricing.total_items(lines),
            subtotal=pricing.cart_subtotal(lines),
        )

    def add_product(
        self,
        cart: CartRepository,
        product: ProductDetail,
        color_id: str | None = None,
        size_id: str | None = None,
        quantity: int = 1,
    ) -> CartSummary:
        """
        Add `quantity` of a product selection to the cart.

        Rules:
          - same (product, colour, size) => quantity is incremented
          - unavailable variant or inactive product => cart unchanged
          - no stock ceiling here; the UI disables increments instead
        """
        if quantity < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Quantity must be at least 1",
            )

        state = variant_state(product, color_id, size_id)
        if not state.available:
            logger.info(
                f"Ignoring add to cart for unavailable product {product.id} "
                f"(color={color_id}, size={size_id})"
            )
            return self.get_cart_summary(cart)

        existing = cart.get_line(product.id, color_id, size_id)
        if existing:
            cart.update_quantity(existing, existing.quantity + quantity)
        else:
            cart.create(
                CartLine(
                    product=product.model_copy(deep=True),
                    quantity=quantity,
                    selected_color_id=color_id,
                    selected_size_id=size_id,
                )
            )

        return self.get_cart_summary(cart)

    def add_to_cart(
        self,
        api: ApiSession,
        cart: CartRepository,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Fetch the product and add the selection to the cart.
        """
        product = self.product_service.get_product(api, payload.product_id)
        return self.add_product(
            cart,
            product,
            color_id=payload.color_id,
            size_id=payload.size_id,
            quantity=payload.quantity,
        )

    def update_quantity(
        self,
        cart: CartRepository,
        line_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Set a line's quantity verbatim; below 1 removes the line.

        Clamping against the stock limit is the caller's job.
        """
        line = self._get_line(cart, line_id)

        if payload.quantity < 1:
            cart.delete(line)
        else:
            cart.update_quantity(line, payload.quantity)

        return self.get_cart_summary(cart)

    def remove_item(
        self,
        cart: CartRepository,
        line_id: uuid.UUID,
    ) -> CartSummary:
        """
        Remove a line from the cart and return updated summary.
        """
        line = self._get_line(cart, line_id)
        cart.delete(line)
        return self.get_cart_summary(cart)

    def clear_cart(self, cart: CartRepository) -> CartSummary:
        """
        Clear all lines from the cart and return an empty summary.
        """
        cart.clear()
        return CartSummary(items=[], total_items=0, subtotal=0.0)

    def refresh_cart(
        self,
        api: ApiSession,
        cart: CartRepository,
        tracker: RequestTracker,
    ) -> CartRefreshResult:
        """
        Re-fetch every product in the cart and replace the snapshots.

        Lines are never dropped: a product that no longer exists keeps
        its old snapshot and is reported as missing. If a newer refresh
        was started meanwhile, this one's results are discarded.
        """
        token = tracker.issue("cart_refresh")
        lines = cart.list_lines()

        fresh: dict[str, ProductDetail | None] = {}
        for line in lines:
            key = line.product.backend_id or line.product.id
            if key in fresh:
                continue
            try:
                fresh[key] = self.product_service.get_product(api, key)
            except HTTPException as e:
                if e.status_code != status.HTTP_404_NOT_FOUND:
                    raise
                logger.warning(f"Product {key} in cart no longer exists upstream")
                fresh[key] = None

        if not tracker.is_current("cart_refresh", token):
            logger.info("Discarding superseded cart refresh")
            return CartRefreshResult(
                cart=self.get_cart_summary(cart),
                changes=[],
                applied=False,
            )

        changes: list[CartLineChange] = []
        for line in lines:
            # Skip lines removed while we were fetching
            if cart.get_by_id(line.id) is None:
                continue

            previous = line.product.price
            product = fresh[line.product.backend_id or line.product.id]
            if product is not None:
                cart.replace_product(line, product.model_copy(deep=True))

            state = variant_state(line.product, line.selected_color_id, line.selected_size_id)
            changes.append(
                CartLineChange(
                    line_id=line.id,
                    product_id=line.product.id,
                    previous_price=previous,
                    current_price=line.product.price,
                    price_changed=previous != line.product.price,
                    is_available=product is not None and state.available,
                    missing=product is None,
                )
            )

        return CartRefreshResult(cart=self.get_cart_summary(cart), changes=changes)
