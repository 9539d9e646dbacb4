"""In-process order-data service used by the demo and tests."""
from __future__ import annotations

import logging
import threading

from .errors import OrderNotFound
from .models import DeliveryInfo, Order, OrderItem

logger = logging.getLogger(__name__)


class InMemoryOrderService:
    """Keyed order storage that hands out copies, like a repository would."""

    def __init__(self, orders: list[Order] | None = None):
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {}
        for order in orders or []:
            self.save(order)

    def save(self, order: Order) -> None:
        if not order.order_id:
            raise ValueError("Cannot store an order without an id")
        with self._lock:
            self._orders[order.order_id] = order.model_copy(deep=True)

    def load_complete_order(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        logger.debug("Loaded order %s", order_id)
        return order.model_copy(deep=True)


def sample_order(order_id: str = "ORD-1001") -> Order:
    """A ready-to-pay order used by the CLI demo."""
    items = [
        OrderItem(product_id="CD-042", title="Kind of Blue (CD)", quantity=1, unit_price=14.99),
        OrderItem(product_id="BK-117", title="The Pragmatic Programmer", quantity=2, unit_price=39.5),
    ]
    order = Order(
        order_id=order_id,
        items=items,
        delivery_info=DeliveryInfo(
            recipient_name="Alex Morgan",
            phone_number="0912345678",
            delivery_address="12 Harbour Street",
            province="Hanoi",
            email="alex@example.com",
        ),
    )
    order.total_amount = round(order.items_total(), 2)
    return order
