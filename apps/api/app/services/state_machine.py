from fastapi import HTTPException, status

from app.models.order import OrderStatus
from app.models.tracking_event import TrackingEventType

TERMINAL: frozenset[OrderStatus] = frozenset({OrderStatus.CANCELLED, OrderStatus.DELIVERED})

# Forward progression. Skipping ahead is allowed, moving back is not.
ORDER_STATUS_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.ACCEPTED,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

# Single-step table for the delivery-agent routes.
DELIVERY_AGENT_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.CONFIRMED: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

STATUS_TRACKING_EVENTS: dict[OrderStatus, tuple[TrackingEventType, int, str]] = {
    OrderStatus.OUT_FOR_DELIVERY: (TrackingEventType.OUT_FOR_DELIVERY, 6, "Out for delivery"),
    OrderStatus.DELIVERED: (TrackingEventType.DELIVERED, 7, "Delivered"),
}


def _transition_conflict(current: OrderStatus, next_status: OrderStatus, message: str):
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": message,
            "current_status": current.value,
            "requested_status": next_status.value,
        },
    )


def is_forward_transition(current: OrderStatus, next_status: OrderStatus) -> bool:
    if next_status == current:
        return True
    if current in TERMINAL:
        return False
    if next_status == OrderStatus.CANCELLED:
        return True
    if current not in ORDER_STATUS_FLOW or next_status not in ORDER_STATUS_FLOW:
        return False
    return ORDER_STATUS_FLOW.index(next_status) >= ORDER_STATUS_FLOW.index(current)


def ensure_forward_transition(current: OrderStatus, next_status: OrderStatus) -> None:
    if is_forward_transition(current, next_status):
        return
    if current in TERMINAL:
        raise _transition_conflict(
            current, next_status, f"Order is already {current.value} and cannot change status"
        )
    raise _transition_conflict(
        current,
        next_status,
        f"Cannot change order status from {current.value} to {next_status.value}. "
        "Orders can only progress forward or be cancelled.",
    )


def is_delivery_agent_transition(current: OrderStatus, next_status: OrderStatus) -> bool:
    return next_status in DELIVERY_AGENT_TRANSITIONS.get(current, set())


def ensure_delivery_agent_transition(current: OrderStatus, next_status: OrderStatus) -> None:
    if not is_delivery_agent_transition(current, next_status):
        raise _transition_conflict(current, next_status, "Invalid status transition")


def tracking_event_for_status(
    status_value: OrderStatus,
) -> tuple[TrackingEventType, int, str] | None:
    return STATUS_TRACKING_EVENTS.get(status_value)
