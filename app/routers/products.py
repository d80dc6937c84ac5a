# app/routers/products.py
from fastapi import APIRouter, Depends, Query

from app.core.api_client import ApiSession, get_api_session
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductRead, VariantSelectionRead
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("/{id_or_slug}", response_model=ProductRead)
def get_product(
    id_or_slug: str,
    api: ApiSession = Depends(get_api_session),
):
    """
    Get a product by id or slug with colour/size options,
    display price and default selection.

    - 404 if the product does not exist.
    """
    product = service.get_product(api, id_or_slug)
    return service.describe(product)


@router.get("/{id_or_slug}/variant", response_model=VariantSelectionRead)
def select_variant(
    id_or_slug: str,
    color_id: str | None = None,
    size_id: str | None = None,
    quantity: int = Query(default=1, ge=1),
    api: ApiSession = Depends(get_api_session),
):
    """
    Resolve a colour/size selection to one variant.

    Returns price, discount badge, stock state at `quantity`,
    and the size availability for the selected colour.
    """
    product = service.get_product(api, id_or_slug)
    return service.select_variant(product, color_id or None, size_id or None, quantity)
