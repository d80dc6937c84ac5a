# app/services/product_service.py
from app.core.api_client import ApiSession
from app.models.product import ProductDetail
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductRead, VariantSelectionRead
from app.services import pricing
from app.services.catalog import default_selection, normalize_product, size_options
from app.services.variants import variant_state


class ProductService:
    """
    Business logic for product detail pages.

    Responsibilities:
      - fetch + normalize upstream products
      - resolve colour/size selections to a variant
      - expose price, discount badge and stock state
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def get_product(self, api: ApiSession, id_or_slug: str) -> ProductDetail:
        """
        Fetch and normalize a product.

        Raises:
            HTTPException(404): unknown id/slug
        """
        raw = self.repo.get_by_id_or_slug(api, id_or_slug)
        return normalize_product(raw)

    def describe(self, product: ProductDetail) -> ProductRead:
        color_id, size_id = default_selection(product)
        return ProductRead(
            **product.model_dump(),
            discount_percent=pricing.discount_percent(product.price, product.original),
            default_color_id=color_id,
            default_size_id=size_id,
        )

    def select_variant(
        self,
        product: ProductDetail,
        color_id: str | None = None,
        size_id: str | None = None,
        quantity: int = 1,
    ) -> VariantSelectionRead:
        """
        Resolve a selection and report price and stock for it.
        """
        state = variant_state(product, color_id, size_id)
        variant = state.variant

        if variant is not None:
            price = pricing.unit_price(variant)
            original = pricing.original_price(variant)
            exact = (color_id is None or variant.color_id == color_id) and (
                size_id is None or variant.size_id == size_id
            )
        else:
            price = original = None
            exact = False

        return VariantSelectionRead(
            product_id=product.id,
            color_id=color_id,
            size_id=size_id,
            variant=variant,
            exact_match=exact,
            unit_price=price,
            original_price=original,
            discount_percent=(
                pricing.discount_percent(price, original) if variant is not None else None
            ),
            quantity=quantity,
            stock_quantity=state.stock_quantity,
            is_available=state.available,
            at_stock_limit=state.at_stock_limit(quantity),
            can_increase=state.can_increase(quantity),
            sizes=size_options(product, color_id),
        )
