"""Read-side checkout queries used by the HTTP API."""
from typing import List

from checkout_service.database.repository import CheckoutStore
from checkout_service.domain.checkout import Checkout
from checkout_service.domain.exceptions import NotFoundError


async def get_checkouts(store: CheckoutStore) -> List[Checkout]:
    return await store.get_all()


async def get_checkout_by_order_id(store: CheckoutStore, order_id: str) -> Checkout:
    """
    Fetch the checkout of an order.

    Raises:
        NotFoundError: If the order has no checkout
    """
    checkout = await store.get_by_order_id(order_id)
    if checkout is None:
        raise NotFoundError("Checkout")
    return checkout
