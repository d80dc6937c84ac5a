# app/core/state.py
import threading
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Depends, Request

from app.core.auth import require_shopper
from app.models.checkout import CheckoutSession
from app.models.user import Shopper
from app.repositories.cart_repo import CartRepository, WishlistRepository


class RequestTracker:
    """
    Issues increasing tokens per request kind ("coupon", "cart_refresh").

    A result is applied only if its token is still the latest one issued
    for that kind; older in-flight results are discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, int] = defaultdict(int)

    def issue(self, kind: str) -> int:
        with self._lock:
            self._latest[kind] += 1
            return self._latest[kind]

    def is_current(self, kind: str, token: int) -> bool:
        with self._lock:
            return self._latest[kind] == token


@dataclass
class ShopperState:
    """
    Everything the storefront keeps for one shopper between requests.

    Cart and wishlist are independent; a product may be in both.
    `lock` guards checkout state transitions that must not interleave.
    """

    cart: CartRepository = field(default_factory=CartRepository)
    wishlist: WishlistRepository = field(default_factory=WishlistRepository)
    checkout: CheckoutSession = field(default_factory=CheckoutSession)
    requests: RequestTracker = field(default_factory=RequestTracker)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def reset_checkout(self) -> CheckoutSession:
        self.checkout = CheckoutSession()
        return self.checkout


class ShopperStateRegistry:
    """
    Owns per-shopper state. One instance lives on `app.state` and is
    injected into routes; there is no module-level cart.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, ShopperState] = {}

    def get(self, shopper_id: str) -> ShopperState:
        with self._lock:
            state = self._states.get(shopper_id)
            if state is None:
                state = ShopperState()
                self._states[shopper_id] = state
            return state


def get_registry(request: Request) -> ShopperStateRegistry:
    return request.app.state.registry


def get_shopper_state(
    shopper: Shopper = Depends(require_shopper),
    registry: ShopperStateRegistry = Depends(get_registry),
) -> ShopperState:
    """
    FastAPI dependency: state of the authenticated shopper.
    """
    return registry.get(shopper.id)
