# app/services/order_service.py
from app.core.api_client import ApiSession
from app.models.order import Order
from app.repositories.order_repo import OrderRepository


class OrderService:
    """
    Order history. Orders are created by the checkout service; this
    only reads them back.
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def list_user_orders(self, api: ApiSession) -> list[Order]:
        return self.order_repo.list_for_user(api)

    def get_user_order(self, api: ApiSession, order_id: str) -> Order:
        """
        Raises:
            HTTPException(404): order does not exist for this shopper
        """
        return self.order_repo.get_by_id(api, order_id)
