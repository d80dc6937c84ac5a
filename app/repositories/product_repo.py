# app/repositories/product_repo.py
from urllib.parse import quote

from app.core.api_client import ApiSession, unwrap
from app.schemas.upstream import ProductPayload


class ProductRepository:
    """
    Data access layer for upstream products.

    - Pure HTTP reads, returns wire payloads.
    - Normalization lives in the service layer.
    """

    def get_by_id_or_slug(self, api: ApiSession, id_or_slug: str) -> ProductPayload:
        """
        Raises:
            HTTPException(404): unknown id/slug
            HTTPException(400): upstream reported failure
            HTTPException(502): upstream unreachable
        """
        response = api.get(f"/products/{quote(id_or_slug, safe='')}")
        data = unwrap(response, "Failed to fetch product.")
        return ProductPayload.model_validate(data)
