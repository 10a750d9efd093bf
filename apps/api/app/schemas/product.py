from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.config import settings
from app.models.product import StockMovementType


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str | None = Field(default=None, max_length=64)
    description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    expiry_date: date | None = None

    @field_validator("name", "sku", "category")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return value.strip()


class ProductUpdate(BaseModel):
    """Partial update. Omitted fields are untouched; an explicit null clears a nullable field."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    expiry_date: date | None = None

    @field_validator("name", "price")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class StockAdjustment(BaseModel):
    quantity: int = Field(gt=0)
    reason: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str | None
    name: str
    description: str | None
    category: str | None
    price: Decimal
    stock_quantity: int
    expiry_date: date | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def low_stock(self) -> bool:
        return self.stock_quantity < settings.low_stock_threshold


class ProductListResponse(BaseModel):
    items: list[ProductResponse]


class StockMovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    type: StockMovementType
    quantity: int
    reason: str
    notes: str | None
    created_at: datetime


class StockMovementListResponse(BaseModel):
    items: list[StockMovementResponse]


class StockSummaryResponse(BaseModel):
    total_products: int
    total_stock_value: Decimal
    low_stock_count: int
    low_stock_items: list[ProductResponse]
    near_expiry_count: int
    near_expiry_items: list[ProductResponse]
