# app/services/variants.py
"""
Variant resolver.

Maps a (product, selected colour, selected size) triple to exactly one
variant and derives its stock state. Pure: same inputs, same result, no
caching.
"""
import logging
from dataclasses import dataclass

from app.models.product import ProductDetail, Variant

logger = logging.getLogger(__name__)


def resolve_variant(
    variants: list[Variant],
    color_id: str | None = None,
    size_id: str | None = None,
) -> Variant | None:
    """
    Pick the variant for a selection. First match wins:

      1. colour and size both match (an unselected axis matches anything)
      2. colour matches (when a colour was selected)
      3. size matches (when a size was selected)
      4. the first variant

    Returns None only when there are no variants at all.
    """
    if not variants:
        return None

    for variant in variants:
        if (color_id is None or variant.color_id == color_id) and (
            size_id is None or variant.size_id == size_id
        ):
            return variant

    if color_id is not None:
        for variant in variants:
            if variant.color_id == color_id:
                return variant

    if size_id is not None:
        for variant in variants:
            if variant.size_id == size_id:
                return variant

    return variants[0]


@dataclass(frozen=True)
class VariantState:
    """
    Stock view of a resolved variant for one cart line / product page.

    Variants that do not track inventory never hit a stock limit.
    """

    variant: Variant | None
    available: bool

    @property
    def stock_quantity(self) -> int:
        return self.variant.stock_quantity if self.variant else 0

    @property
    def tracks_inventory(self) -> bool:
        return self.variant.track_inventory if self.variant else True

    def at_stock_limit(self, quantity: int) -> bool:
        return (
            self.available
            and self.tracks_inventory
            and self.stock_quantity > 0
            and quantity >= self.stock_quantity
        )

    def can_increase(self, quantity: int) -> bool:
        if not self.available:
            return False
        if not self.tracks_inventory:
            return True
        return quantity < self.stock_quantity


def variant_state(
    product: ProductDetail,
    color_id: str | None = None,
    size_id: str | None = None,
) -> VariantState:
    """
    Resolve the selection on `product` and derive availability.

    available = product is active AND variant is purchasable.
    """
    variant = resolve_variant(product.variants, color_id, size_id)

    if variant is None:
        logger.warning(f"Product {product.id} has no variants; nothing to resolve")
        return VariantState(variant=None, available=False)

    if (color_id is not None and variant.color_id != color_id) or (
        size_id is not None and variant.size_id != size_id
    ):
        logger.info(
            f"Product {product.id}: no exact variant for color={color_id} size={size_id}, "
            f"using variant {variant.id}"
        )

    available = product.is_active and variant.purchasable
    return VariantState(variant=variant, available=available)
