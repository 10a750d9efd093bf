from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.models.order import OrderStatus, PaymentMode


class OrderItemSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderSnapshot(BaseModel):
    """Detached copy of an order handed to notifications and exports."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    tracking_id: str
    status: OrderStatus
    payment_mode: PaymentMode
    total_amount: Decimal
    delivery_name: str | None = None
    delivery_email: str | None = None
    delivery_mobile: str | None = None
    delivery_address: str
    estimated_delivery_start: date | None = None
    estimated_delivery_end: date | None = None
    assigned_to: str | None = None
    cancellation_reason: str | None = None
    items: list[OrderItemSnapshot] = []

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class ProductSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str | None = None
    stock_quantity: int
    expiry_date: date | None = None
