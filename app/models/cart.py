# app/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

from app.models.product import ProductDetail


class CartLine(SQLModel):
    """
    Shopping cart entry for a shopper.

    One cart cannot hold 2 lines for the same
    (product, selected colour, selected size).

    `product` is a snapshot taken when the line was added; it is only
    replaced by an explicit cart refresh.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)

    product: ProductDetail

    quantity: int = Field(ge=1, description="Must be >= 1")

    selected_color_id: str | None = None
    selected_size_id: str | None = None

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def same_line(
        self,
        product_id: str,
        color_id: str | None,
        size_id: str | None,
    ) -> bool:
        return (
            self.product.id == product_id
            and self.selected_color_id == color_id
            and self.selected_size_id == size_id
        )
