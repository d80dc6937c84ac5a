# app/services/catalog.py
"""
Variant catalog normalizer.

Turns the upstream product payload (flat variant list, each variant tagged
with an optional colour and size) into the ProductDetail shown by the
storefront: colour/size options, sorted gallery, normalized variants and
the display price range.
"""
import math
from typing import Any

from app.models.product import (
    ColorOption,
    GalleryItem,
    ProductDetail,
    ProductImages,
    SizeOption,
    Variant,
)
from app.schemas.upstream import ColorPayload, ImagePayload, ProductPayload, VariantPayload

DEFAULT_SWATCH = "#000000"


def _to_price(raw: Any) -> float:
    """
    Parse an upstream price. Anything that is not a finite number
    becomes NaN so it is skipped by the price range.
    """
    if raw is None or isinstance(raw, bool):
        return math.nan
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return math.nan
    return value if math.isfinite(value) else math.nan


def _to_sale_price(raw: Any) -> float | None:
    if raw is None:
        return None
    value = _to_price(raw)
    return None if math.isnan(value) else value


def _color_option(color: ColorPayload) -> ColorOption:
    return ColorOption(
        id=color.id,
        name=color.name or "",
        value=color.hex_code or color.code or DEFAULT_SWATCH,
    )


def normalize_variant(raw: VariantPayload) -> Variant:
    return Variant(
        id=raw.id,
        sku=raw.sku,
        color_id=raw.color.id if raw.color else None,
        size_id=raw.size.id if raw.size else None,
        stock_quantity=max(raw.stock_quantity or 0, 0),
        is_available=raw.is_available,
        track_inventory=raw.track_inventory,
        base_price=_to_price(raw.base_price),
        sale_price=_to_sale_price(raw.sale_price),
    )


def collect_colors(
    raw_variants: list[VariantPayload],
    raw_images: list[ImagePayload],
) -> list[ColorOption]:
    """
    Unique colours across variants, then across colour-tagged images.
    First occurrence wins for name/swatch.
    """
    colors: dict[str, ColorOption] = {}
    for raw in raw_variants:
        if raw.color and raw.color.id not in colors:
            colors[raw.color.id] = _color_option(raw.color)
    for img in raw_images:
        if img.color and img.color.id not in colors:
            colors[img.color.id] = _color_option(img.color)
    return list(colors.values())


def _size_sort_key(size: SizeOption) -> tuple[int, int, str]:
    # Sizes without sort_order go after every ordered size
    if size.sort_order is None:
        return (1, 0, size.name)
    return (0, size.sort_order, size.name)


def collect_sizes(
    raw_variants: list[VariantPayload],
    variants: list[Variant],
) -> list[SizeOption]:
    """
    Unique sizes, each flagged in_stock when any variant of that size
    (any colour) is purchasable. Sorted by sort_order, then name.
    """
    sizes: dict[str, SizeOption] = {}
    for raw in raw_variants:
        size = raw.size
        if size is None or size.id in sizes:
            continue
        sizes[size.id] = SizeOption(
            id=size.id,
            name=size.code or size.label or "",
            code=size.code,
            in_stock=any(v.size_id == size.id and v.purchasable for v in variants),
            sort_order=size.sort_order,
        )
    return sorted(sizes.values(), key=_size_sort_key)


def build_gallery(name: str, raw_images: list[ImagePayload]) -> tuple[list[GalleryItem], ProductImages]:
    """
    Primary image first, then by sort_order.

    Returns the gallery and the (primary, hover) pair; hover falls back to
    the primary image when the gallery has a single entry.
    """
    ordered = sorted(raw_images, key=lambda img: (not img.is_primary, img.sort_order))
    gallery = [
        GalleryItem(
            id=f"img-{img.id if img.id is not None else index}",
            src=img.image_url,
            alt=name,
            color_id=img.color.id if img.color else None,
        )
        for index, img in enumerate(ordered)
    ]
    primary = gallery[0].src if gallery else ""
    hover = gallery[1].src if len(gallery) > 1 else primary
    return gallery, ProductImages(primary=primary, hover=hover)


def price_range(variants: list[Variant]) -> tuple[float, float]:
    """
    Display (price, original) for a product.

    price is the lowest sale price only when it is positive and undercuts
    the lowest base price (or every base price is zero); otherwise the
    lowest base price. original is the lowest base price only when a
    genuine sale undercut it, else equal to price.
    """
    candidates = [v for v in variants if not math.isnan(v.base_price)]
    base_prices = [v.base_price for v in candidates]
    sale_prices = [v.sale_price for v in candidates if v.sale_price is not None]

    min_base = min(base_prices) if base_prices else 0.0
    min_sale = min(sale_prices) if sale_prices else None

    if min_sale is not None and min_sale > 0 and (min_sale < min_base or min_base == 0):
        price = min_sale
    else:
        price = min_base

    if price < min_base:
        original = min_base
    else:
        original = price
    return price, original


def normalize_product(raw: ProductPayload) -> ProductDetail:
    """
    Map an upstream product payload to a ProductDetail.
    """
    variants = [normalize_variant(v) for v in raw.variants]
    gallery, images = build_gallery(raw.name, raw.images)
    price, original = price_range(variants)
    slug = raw.slug or raw.id

    return ProductDetail(
        backend_id=raw.id,
        id=slug,
        slug=slug,
        name=raw.name,
        is_active=raw.is_active,
        price=price,
        original=original,
        short_description=raw.short_description or "",
        description=raw.description or "",
        gallery=gallery,
        images=images,
        colors=collect_colors(raw.variants, raw.images),
        sizes=collect_sizes(raw.variants, variants),
        variants=variants,
        sku=raw.variants[0].sku if raw.variants else None,
    )


def size_options(product: ProductDetail, color_id: str | None = None) -> list[SizeOption]:
    """
    Size options with in_stock recomputed for a selected colour.

    With no colour selected this equals product.sizes.
    """
    if color_id is None:
        return [size.model_copy() for size in product.sizes]
    return [
        size.model_copy(
            update={
                "in_stock": any(
                    v.size_id == size.id and v.color_id == color_id and v.purchasable
                    for v in product.variants
                )
            }
        )
        for size in product.sizes
    ]


def default_selection(product: ProductDetail) -> tuple[str | None, str | None]:
    """
    Initial (colour, size) for a product page: the first colour and the
    first in-stock size for it, else the first size.
    """
    color_id = product.colors[0].id if product.colors else None
    sizes = size_options(product, color_id)
    size_id = next((s.id for s in sizes if s.in_stock), None)
    if size_id is None and sizes:
        size_id = sizes[0].id
    return color_id, size_id
