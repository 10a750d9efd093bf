import logging
import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.integrations.errors import IntegrationError
from app.integrations.geocoding_client import GeocoderProtocol
from app.models.location_tracking import LocationTracking
from app.models.order import Order, OrderStatus
from app.models.tracking_event import TrackingEvent, TrackingEventType
from app.observability import log_event, metrics_store
from app.schemas.order import LocationUpdate
from app.schemas.tracking import (
    LocationHistoryResponse,
    LocationSampleResponse,
    PublicTrackingResponse,
    RouteEstimate,
    TrackingEventResponse,
)
from app.services.state_machine import tracking_event_for_status

NOT_YET_ACCEPTED = "Order not yet accepted by a delivery agent"
EARTH_RADIUS_KM = 6371.0

CANNED_EVENTS: tuple[tuple[int, TrackingEventType, str, str], ...] = (
    (1, TrackingEventType.LABEL_CREATED, "Label created", "Warehouse"),
    (2, TrackingEventType.SHIPMENT_PICKED, "Shipment picked up", "Warehouse"),
    (
        3,
        TrackingEventType.PACKAGE_RECEIVED_AT_FACILITY,
        "Package received at sorting facility",
        "Sorting Center",
    ),
    (4, TrackingEventType.PACKAGE_LEFT_FACILITY, "Package left sorting facility", "Sorting Center"),
    (
        5,
        TrackingEventType.PACKAGE_ARRIVED_AT_LOCAL_FACILITY,
        "Package arrived at local facility",
        "Local Hub",
    ),
)

_STATUS_EVENT_LOCATIONS = {
    OrderStatus.OUT_FOR_DELIVERY: "Local Hub",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_canned_events(db: Session, order: Order, now: datetime | None = None) -> None:
    """Lay out the standard shipment timeline, one hour apart."""
    base = now or _utcnow()
    for sequence, event_type, description, location in CANNED_EVENTS:
        db.add(
            TrackingEvent(
                order_id=order.id,
                event_type=event_type,
                description=description,
                location=location,
                sequence=sequence,
                event_time=base + timedelta(hours=sequence + 1),
            )
        )


def add_status_event(db: Session, order: Order, new_status: OrderStatus) -> TrackingEvent | None:
    mapping = tracking_event_for_status(new_status)
    if mapping is None:
        return None

    event_type, sequence, description = mapping
    existing = db.scalar(
        select(TrackingEvent).where(
            TrackingEvent.order_id == order.id, TrackingEvent.sequence == sequence
        )
    )
    if existing is not None:
        return existing

    location = _STATUS_EVENT_LOCATIONS.get(new_status)
    if location is None:
        location = order.delivery_address or "Delivery Location"
    event = TrackingEvent(
        order_id=order.id,
        event_type=event_type,
        description=description,
        location=location[:255],
        sequence=sequence,
        event_time=_utcnow(),
    )
    db.add(event)
    return event


def record_location(db: Session, order: Order, payload: LocationUpdate) -> LocationTracking:
    now = _utcnow()
    order.current_location = {
        "lat": payload.latitude,
        "lng": payload.longitude,
        "timestamp": now.isoformat(),
        "address": payload.address,
    }
    sample = LocationTracking(
        order_id=order.id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        address=payload.address,
        accuracy=payload.accuracy,
        speed=payload.speed,
        heading=payload.heading,
        recorded_at=now,
    )
    db.add(sample)
    return sample


def list_tracking_events(db: Session, order_id: int) -> list[TrackingEvent]:
    return list(
        db.scalars(
            select(TrackingEvent)
            .where(TrackingEvent.order_id == order_id)
            .order_by(TrackingEvent.sequence.asc())
        )
    )


def tracking_view(db: Session, order: Order) -> PublicTrackingResponse:
    events = list_tracking_events(db, order.id)
    return PublicTrackingResponse(
        order_number=order.order_number,
        tracking_id=order.tracking_id,
        courier_name=order.courier_name,
        status=order.status,
        estimated_delivery_start=order.estimated_delivery_start,
        estimated_delivery_end=order.estimated_delivery_end,
        events=[TrackingEventResponse.model_validate(event) for event in events],
    )


def default_pickup_location() -> dict:
    return {
        "lat": settings.default_pickup_lat,
        "lng": settings.default_pickup_lng,
        "address": settings.default_pickup_address,
    }


def geocode_delivery(geocoder: GeocoderProtocol, pincode: str) -> dict | None:
    """Best-effort pincode lookup; a failure is logged and yields None."""
    try:
        location = geocoder.geocode_pincode(pincode)
    except IntegrationError as err:
        metrics_store.increment("geocoding_failures_total")
        log_event(f"geocoding_failed pincode={pincode} error={err}", level=logging.WARNING)
        return None
    data = location.model_dump()
    data["pincode"] = data.get("pincode") or pincode
    return data


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    lat1_rad, lng1_rad, lat2_rad, lng2_rad = map(math.radians, [lat1, lng1, lat2, lng2])
    dlat = lat2_rad - lat1_rad
    dlng = lng2_rad - lng1_rad
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def estimate_route(origin: dict, destination: dict) -> RouteEstimate:
    """Straight-line estimate assuming one kilometre per minute."""
    distance_km = haversine_km(
        float(origin["lat"]), float(origin["lng"]),
        float(destination["lat"]), float(destination["lng"]),
    )
    duration_s = int(distance_km * 60)
    return RouteEstimate(
        distance_m=int(distance_km * 1000),
        distance_text=f"{distance_km:.1f} km",
        duration_s=duration_s,
        duration_text=f"{duration_s // 60} min",
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def location_history(
    db: Session, order: Order, geocoder: GeocoderProtocol
) -> LocationHistoryResponse:
    if order.assigned_to is None or order.accepted_at is None:
        return LocationHistoryResponse(
            order_id=order.id,
            order_number=order.order_number,
            tracking_id=order.tracking_id,
            status=order.status,
            tracking_enabled=False,
            message=NOT_YET_ACCEPTED,
        )

    if order.delivery_location is None and order.delivery_pincode:
        delivery_location = geocode_delivery(geocoder, order.delivery_pincode)
        if delivery_location is not None:
            order.delivery_location = delivery_location
            db.commit()
            log_event("delivery_location_backfilled", order_id=order.id)

    accepted_at = _as_utc(order.accepted_at)
    samples = [
        sample for sample in order.locations if _as_utc(sample.recorded_at) >= accepted_at
    ]

    route = None
    if order.current_location and order.delivery_location:
        route = estimate_route(order.current_location, order.delivery_location)

    return LocationHistoryResponse(
        order_id=order.id,
        order_number=order.order_number,
        tracking_id=order.tracking_id,
        status=order.status,
        tracking_enabled=True,
        current_location=order.current_location,
        pickup_location=order.pickup_location or default_pickup_location(),
        delivery_location=order.delivery_location,
        locations=[LocationSampleResponse.model_validate(sample) for sample in samples],
        route=route,
    )
