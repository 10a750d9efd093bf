from app.schemas.order import (
    LocationUpdate,
    OrderCreate,
    OrderDetailsResponse,
    OrderItemCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from app.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    StockAdjustment,
    StockMovementListResponse,
    StockMovementResponse,
    StockSummaryResponse,
)
from app.schemas.snapshots import OrderSnapshot, ProductSnapshot
from app.schemas.tracking import (
    LocationHistoryResponse,
    PublicTrackingResponse,
    TrackingEventResponse,
)

__all__ = [
    "OrderItemCreate",
    "OrderCreate",
    "OrderStatusUpdate",
    "LocationUpdate",
    "OrderResponse",
    "OrderDetailsResponse",
    "OrderListResponse",
    "ProductCreate",
    "ProductUpdate",
    "StockAdjustment",
    "ProductResponse",
    "ProductListResponse",
    "StockMovementResponse",
    "StockMovementListResponse",
    "StockSummaryResponse",
    "OrderSnapshot",
    "ProductSnapshot",
    "TrackingEventResponse",
    "PublicTrackingResponse",
    "LocationHistoryResponse",
]
