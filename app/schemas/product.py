# app/schemas/product.py
from sqlmodel import SQLModel

from app.models.product import ProductDetail, SizeOption, Variant


class ProductRead(ProductDetail):
    """
    Product representation for clients: the normalized detail plus
    the discount badge and the initial colour/size selection.
    """

    discount_percent: int | None = None
    default_color_id: str | None = None
    default_size_id: str | None = None


class VariantSelectionRead(SQLModel):
    """
    Result of resolving a colour/size selection on a product page.
    """

    product_id: str
    color_id: str | None = None
    size_id: str | None = None

    variant: Variant | None = None
    exact_match: bool

    unit_price: float | None = None
    original_price: float | None = None
    discount_percent: int | None = None

    quantity: int
    stock_quantity: int
    is_available: bool
    at_stock_limit: bool
    can_increase: bool

    # Size availability for the selected colour
    sizes: list[SizeOption]
