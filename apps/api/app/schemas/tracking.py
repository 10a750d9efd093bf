from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from app.models.order import OrderStatus
from app.models.tracking_event import TrackingEventType


class TrackingEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: TrackingEventType
    description: str
    location: str | None
    sequence: int
    event_time: datetime


class PublicTrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    tracking_id: str
    courier_name: str | None
    status: OrderStatus
    estimated_delivery_start: date | None
    estimated_delivery_end: date | None
    events: list[TrackingEventResponse]


class LocationSampleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float
    address: str | None
    accuracy: float | None
    speed: float | None
    heading: float | None
    recorded_at: datetime


class RouteEstimate(BaseModel):
    distance_m: int
    distance_text: str
    duration_s: int
    duration_text: str


class LocationHistoryResponse(BaseModel):
    """Live tracking view; samples and locations are only filled once an agent accepts."""

    order_id: int
    order_number: str
    tracking_id: str
    status: OrderStatus
    tracking_enabled: bool
    message: str | None = None
    current_location: dict | None = None
    pickup_location: dict | None = None
    delivery_location: dict | None = None
    locations: list[LocationSampleResponse] = []
    route: RouteEstimate | None = None
