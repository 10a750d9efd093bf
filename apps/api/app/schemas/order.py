from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.order import OrderStatus, PaymentMode


class OrderItemCreate(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)


class OrderCreate(BaseModel):
    items: list[OrderItemCreate] = Field(min_length=1)
    delivery_name: str | None = Field(default=None, max_length=255)
    delivery_email: str | None = Field(default=None, max_length=255)
    delivery_mobile: str | None = Field(default=None, max_length=50)
    delivery_address: str = Field(max_length=2000)
    delivery_pincode: str = Field(max_length=20)
    payment_mode: PaymentMode = PaymentMode.CASH_ON_DELIVERY

    @field_validator(
        "delivery_name", "delivery_email", "delivery_mobile", "delivery_address", "delivery_pincode"
    )
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return value.strip()


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    cancellation_reason: str | None = Field(default=None, max_length=1000)


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = Field(default=None, max_length=512)
    accuracy: float | None = Field(default=None, ge=0)
    speed: float | None = Field(default=None, ge=0)
    heading: float | None = Field(default=None, ge=0, lt=360)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    tracking_id: str
    customer_id: str
    total_amount: Decimal
    status: OrderStatus
    payment_mode: PaymentMode
    delivery_name: str | None
    delivery_email: str | None
    delivery_mobile: str | None
    delivery_address: str
    delivery_pincode: str
    estimated_delivery_start: date | None
    estimated_delivery_end: date | None
    courier_name: str | None
    assigned_to: str | None
    accepted_at: datetime | None
    picked_up_at: datetime | None
    out_for_delivery_at: datetime | None
    delivered_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse]


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class OrderDetailsResponse(OrderResponse):
    """Order plus the locations a delivery agent needs."""

    pickup_location: dict | None
    delivery_location: dict | None
    current_location: dict | None
