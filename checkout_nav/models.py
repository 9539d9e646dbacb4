"""Order payload carried between checkout screens."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING_DELIVERY_INFO = "pending_delivery_info"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_FAILED = "payment_failed"
    PAID = "paid"
    CANCELLED = "cancelled"


class DeliveryInfo(BaseModel):
    recipient_name: str = ""
    phone_number: str = ""
    delivery_address: str = ""
    province: str = ""
    email: str | None = None
    is_rush: bool = False


class OrderItem(BaseModel):
    product_id: str
    title: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0.0, ge=0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


class Order(BaseModel):
    """An in-flight order as seen by the checkout screens.

    Persistence lives elsewhere; this is only the shape the screens exchange.
    """

    order_id: str | None = None
    items: list[OrderItem] = Field(default_factory=list)
    delivery_info: DeliveryInfo | None = None
    total_amount: float = 0.0
    status: OrderStatus = OrderStatus.PENDING_PAYMENT

    @property
    def has_items(self) -> bool:
        return bool(self.items)

    def items_total(self) -> float:
        return sum(item.line_total for item in self.items)
