# app/models/product.py
from sqlmodel import SQLModel, Field


class ColorOption(SQLModel):
    """
    Colour choice offered on a product page.
    """

    id: str
    name: str = ""
    value: str = Field(default="#000000", description="Swatch hex code")


class SizeOption(SQLModel):
    """
    Size choice offered on a product page.

    in_stock is true when any variant of this size, across all colours,
    is purchasable.
    """

    id: str
    name: str
    code: str | None = None
    in_stock: bool = False
    sort_order: int | None = None


class GalleryItem(SQLModel):
    id: str
    src: str
    alt: str = ""
    color_id: str | None = None


class ProductImages(SQLModel):
    """
    Default display image and hover/alternate image.
    """

    primary: str = ""
    hover: str = ""


class Variant(SQLModel):
    """
    One sellable (colour, size) combination of a product.

    Matches the upstream variant row:
      - id, sku, color, size, stockQuantity, isAvailable,
        basePrice, salePrice, trackInventory
    """

    id: str
    sku: str | None = None
    color_id: str | None = None
    size_id: str | None = None

    stock_quantity: int = Field(default=0, ge=0)

    # Explicit seller flag
    is_available: bool = True

    # False => stock is not counted, the variant never sells out
    track_inventory: bool = True

    base_price: float
    sale_price: float | None = None

    @property
    def purchasable(self) -> bool:
        if not self.is_available:
            return False
        if not self.track_inventory:
            return True
        return self.stock_quantity > 0


class ProductDetail(SQLModel):
    """
    Normalized product aggregate as shown on the storefront.

    price / original:
      - price is the lowest saleable price across variants
      - original >= price, equal when there is no genuine sale
    """

    backend_id: str | None = None
    id: str
    slug: str
    name: str

    # Master kill-switch, overrides all variant state
    is_active: bool = True

    price: float = 0
    original: float = 0

    short_description: str = ""
    description: str = ""

    gallery: list[GalleryItem] = Field(default_factory=list)
    images: ProductImages = Field(default_factory=ProductImages)
    colors: list[ColorOption] = Field(default_factory=list)
    sizes: list[SizeOption] = Field(default_factory=list)
    variants: list[Variant] = Field(default_factory=list)

    sku: str | None = None

    def matches_id(self, product_id: str) -> bool:
        """
        A product can be referred to by slug, public id or backend id.
        """
        return product_id in {self.id, self.slug, self.backend_id}
