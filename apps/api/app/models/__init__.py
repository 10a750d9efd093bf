# Import SQLAlchemy models so they register on Base.metadata
from app.models.location_tracking import LocationTracking  # noqa: F401
from app.models.order import Order, OrderItem, OrderStatus, PaymentMode  # noqa: F401
from app.models.product import Product, StockMovement, StockMovementType  # noqa: F401
from app.models.tracking_event import TrackingEvent, TrackingEventType  # noqa: F401
