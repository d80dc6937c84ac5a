# app/routers/orders.py
from fastapi import APIRouter, Depends

from app.core.api_client import ApiSession, get_api_session
from app.core.auth import require_shopper
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(require_shopper)],
)

order_repo = OrderRepository()
service = OrderService(order_repo)


@router.get("", response_model=list[Order])
def list_my_orders(api: ApiSession = Depends(get_api_session)):
    """
    List the authenticated shopper's orders.
    """
    return service.list_user_orders(api)


@router.get("/{order_id}", response_model=Order)
def get_my_order(
    order_id: str,
    api: ApiSession = Depends(get_api_session),
):
    """
    Get a single order belonging to the current shopper.

    - 404 if the order does not exist.
    """
    return service.get_user_order(api, order_id)
