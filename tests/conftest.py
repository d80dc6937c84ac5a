import os

# Settings are read once at import time; the secret must exist before that
os.environ["JWT_SECRET"] = "test-secret"

import json
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.api_client import ApiClient, get_api_session
from app.core.state import ShopperState
from app.models.product import ColorOption, ProductDetail, SizeOption, Variant

UPSTREAM_URL = "http://commerce.test/api/v1"


# ----- Domain factories -----


def make_variant(
    id="v1",
    color_id=None,
    size_id=None,
    stock=5,
    available=True,
    base=1000.0,
    sale=None,
    track_inventory=True,
) -> Variant:
    return Variant(
        id=id,
        sku=f"SKU-{id}",
        color_id=color_id,
        size_id=size_id,
        stock_quantity=stock,
        is_available=available,
        track_inventory=track_inventory,
        base_price=base,
        sale_price=sale,
    )


def make_product(
    id="linen-shirt",
    price=1000.0,
    original=None,
    variants=None,
    is_active=True,
    colors=None,
    sizes=None,
) -> ProductDetail:
    if variants is None:
        variants = [make_variant(id=f"{id}-v1", color_id="1", size_id="2", base=price)]
    return ProductDetail(
        backend_id=f"b-{id}",
        id=id,
        slug=id,
        name=id.replace("-", " ").title(),
        is_active=is_active,
        price=price,
        original=original if original is not None else price,
        colors=colors or [ColorOption(id="1", name="Red", value="#ff0000")],
        sizes=sizes or [SizeOption(id="2", name="M", in_stock=True, sort_order=2)],
        variants=variants,
    )


@pytest.fixture
def shopper_state():
    return ShopperState()


# ----- Fake upstream commerce API -----


def product_payload(
    id=101,
    slug="linen-shirt",
    name="Linen Shirt",
    base="1000",
    sale="800",
    stock=3,
    is_active=True,
):
    red = {"id": 1, "name": "Red", "hexCode": "#ff0000"}
    blue = {"id": 2, "name": "Blue", "hexCode": "#0000ff"}
    small = {"id": 10, "code": "S", "sortOrder": 1}
    medium = {"id": 11, "code": "M", "sortOrder": 2}
    return {
        "id": id,
        "name": name,
        "slug": slug,
        "isActive": is_active,
        "shortDescription": "Breathable linen",
        "images": [
            {"id": 2, "imageUrl": f"/img/{slug}-blue.jpg", "sortOrder": 1, "color": blue},
            {"id": 1, "imageUrl": f"/img/{slug}-red.jpg", "isPrimary": True, "sortOrder": 0, "color": red},
        ],
        "variants": [
            {
                "id": id * 10 + 1,
                "sku": f"{slug.upper()}-R-S",
                "stockQuantity": stock,
                "isAvailable": True,
                "basePrice": base,
                "salePrice": sale,
                "color": red,
                "size": small,
            },
            {
                "id": id * 10 + 2,
                "sku": f"{slug.upper()}-R-M",
                "stockQuantity": 0,
                "isAvailable": True,
                "basePrice": base,
                "salePrice": sale,
                "color": red,
                "size": medium,
            },
        ],
    }


class FakeCommerceApi:
    """
    In-memory stand-in for the upstream commerce API, served through
    httpx.MockTransport. Responses use the `{success, data}` envelope.
    """

    def __init__(self):
        self.products: dict[str, dict] = {}
        self.addresses: list[dict] = []
        # code -> discount amount, or an error message string
        self.coupons: dict[str, float | str] = {}
        self.available_coupons: list[dict] = []
        self.shipping: dict | None = {"freeShippingThreshold": 1999, "shippingFee": 89}
        self.orders: list[dict] = []
        self.fail_orders = False
        self.requests: list[httpx.Request] = []

    def add_product(self, payload: dict) -> dict:
        self.products[str(payload["id"])] = payload
        return payload

    def find_product(self, key: str) -> dict | None:
        for product in self.products.values():
            if key in (str(product["id"]), product.get("slug")):
                return product
        return None

    # ---- helpers ----

    @staticmethod
    def ok(data) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": data})

    @staticmethod
    def fail(status_code: int, message: str) -> httpx.Response:
        return httpx.Response(status_code, json={"success": False, "message": message})

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path == f"/api/v1{path}"
        ]

    # ---- routing ----

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path).removeprefix("/api/v1")
        method = request.method
        body = json.loads(request.content) if request.content else None

        if path.startswith("/products/") and method == "GET":
            product = self.find_product(path.removeprefix("/products/"))
            if product is None:
                return self.fail(404, "Product not found")
            return self.ok(product)

        if path == "/user/addresses":
            if method == "GET":
                return self.ok(self.addresses)
            created = {"id": len(self.addresses) + 1, **body}
            self.addresses.append(created)
            return self.ok(created)

        if path.startswith("/user/addresses/") and path.endswith("/default"):
            address_id = path.split("/")[3]
            target = None
            for address in self.addresses:
                address["isDefault"] = str(address["id"]) == address_id
                if address["isDefault"]:
                    target = address
            if target is None:
                return self.fail(404, "Address not found")
            return self.ok(target)

        if path == "/coupons/validate":
            rule = self.coupons.get(body["code"])
            if rule is None:
                return self.fail(400, "Invalid coupon code")
            if isinstance(rule, str):
                return self.fail(400, rule)
            return self.ok(
                {
                    "coupon": {"code": body["code"], "type": "ORDER"},
                    "discountAmount": rule,
                    "remainingGlobal": 5,
                }
            )

        if path == "/coupons/available":
            return self.ok(self.available_coupons)

        if path == "/orders/shipping-settings":
            if self.shipping is None:
                return httpx.Response(503)
            return self.ok(self.shipping)

        if path == "/orders":
            if method == "GET":
                return self.ok(self.orders)
            if self.fail_orders:
                return self.fail(400, "Payment declined")
            order = {
                "id": 9000 + len(self.orders),
                "status": "Order placed",
                "items": [
                    {"productId": it["productId"], "price": it["unitPrice"], "quantity": it["quantity"]}
                    for it in body["items"]
                ],
                "subtotal": body["subtotal"],
                "shippingFee": body["shippingFee"],
                "taxes": body["taxes"],
                "discountAmount": body["discountAmount"],
                "total": body["total"],
                "couponCode": body.get("couponCode"),
            }
            self.orders.append(order)
            return self.ok(order)

        if path.startswith("/orders/") and method == "GET":
            order_id = path.removeprefix("/orders/")
            for order in self.orders:
                if str(order["id"]) == order_id:
                    return self.ok(order)
            return self.fail(404, "Order not found")

        return self.fail(404, f"No route for {method} {path}")


@pytest.fixture
def upstream():
    fake = FakeCommerceApi()
    fake.add_product(product_payload())
    fake.addresses.append(
        {
            "id": 1,
            "name": "Asha Rao",
            "phoneNumber": "9999999999",
            "addressLine1": "12 Lake Road",
            "city": "Pune",
            "state": "MH",
            "postalCode": "411001",
            "addressType": "HOME",
            "isDefault": True,
        }
    )
    return fake


@pytest.fixture
def api_client(upstream):
    client = ApiClient(UPSTREAM_URL, transport=httpx.MockTransport(upstream.handler))
    yield client
    client.close()


@pytest.fixture
def api(api_client):
    return api_client.bind("upstream-token")


# ----- HTTP surface -----


def auth_headers(sub: str = "shopper-1") -> dict[str, str]:
    token = jwt.encode({"sub": sub, "email": f"{sub}@example.com"}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(api_client):
    from app.main import app

    app.dependency_overrides[get_api_session] = lambda: api_client.bind("upstream-token")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return auth_headers()
