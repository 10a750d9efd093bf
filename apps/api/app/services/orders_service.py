import random
import secrets
import time
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.auth.dependencies import AuthContext
from app.config import settings
from app.dependencies import OrderIntegrations
from app.models.order import Order, OrderItem, OrderStatus
from app.models.product import Product, StockMovement, StockMovementType
from app.observability import log_event, metrics_store
from app.schemas.order import LocationUpdate, OrderCreate
from app.schemas.snapshots import OrderSnapshot
from app.services.products_service import debit_stock, submit_low_stock_alerts
from app.services.state_machine import (
    ensure_delivery_agent_transition,
    ensure_forward_transition,
)
from app.services.tracking_service import (
    add_canned_events,
    add_status_event,
    default_pickup_location,
    geocode_delivery,
    record_location,
)

AVAILABLE_FOR_PICKUP: frozenset[OrderStatus] = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
)

ALREADY_ASSIGNED = "Order is already assigned to another delivery agent"
CANCELLATION_REASON_REQUIRED = "Cancellation reason is required when canceling an order"

_STAGE_TIMESTAMPS: dict[OrderStatus, str] = {
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.randbelow(10000):04d}"


def _generate_tracking_id() -> str:
    return "TRK-" + secrets.token_hex(4).upper()


def _generate_unique(db: Session, column, generator) -> str:
    while True:
        value = generator()
        if not db.scalar(select(Order.id).where(column == value)):
            return value


def estimated_delivery_window(today: date | None = None) -> tuple[date, date]:
    base = today or date.today()
    start_days = settings.delivery_window_start_days
    end_days = random.randint(start_days, max(start_days, settings.delivery_window_max_days))
    return base + timedelta(days=start_days), base + timedelta(days=end_days)


def _not_found(message: str = "Order not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _forbidden(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def _submit_order_side_effects(
    integrations: OrderIntegrations, order: Order, *, confirmation: bool
) -> None:
    snapshot = OrderSnapshot.model_validate(order)
    notify = (
        integrations.notifier.send_order_confirmation
        if confirmation
        else integrations.notifier.send_order_status_update
    )
    integrations.runner.submit(
        "order_confirmation" if confirmation else "order_status_update",
        notify,
        snapshot,
        order_id=order.id,
    )
    integrations.runner.submit(
        "sheet_export", integrations.sheets.append_order_row, snapshot, order_id=order.id
    )


def create_order(
    db: Session,
    customer: AuthContext,
    payload: OrderCreate,
    integrations: OrderIntegrations,
) -> Order:
    if not payload.delivery_address:
        raise _bad_request("Delivery address is required")
    if not payload.delivery_pincode:
        raise _bad_request("Delivery pincode is required")

    requested: OrderedDict[int, int] = OrderedDict()
    for line in payload.items:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    products: dict[int, Product] = {}
    for product_id, quantity in requested.items():
        product = db.get(Product, product_id)
        if not product:
            raise _not_found(f"Product not found: {product_id}")
        if product.stock_quantity < quantity:
            raise _bad_request(f"Insufficient stock for: {product.name}")
        products[product_id] = product

    delivery_location = geocode_delivery(integrations.geocoder, payload.delivery_pincode)
    window_start, window_end = estimated_delivery_window()

    total = sum(
        (products[line.product_id].price * line.quantity for line in payload.items),
        Decimal("0"),
    )
    order = Order(
        order_number=_generate_unique(db, Order.order_number, _generate_order_number),
        tracking_id=_generate_unique(db, Order.tracking_id, _generate_tracking_id),
        customer_id=customer.user_id,
        total_amount=total,
        status=OrderStatus.CONFIRMED,
        payment_mode=payload.payment_mode,
        delivery_name=payload.delivery_name or customer.name or "Customer",
        delivery_email=payload.delivery_email or customer.email,
        delivery_mobile=payload.delivery_mobile,
        delivery_address=payload.delivery_address,
        delivery_pincode=payload.delivery_pincode,
        estimated_delivery_start=window_start,
        estimated_delivery_end=window_end,
        courier_name=settings.courier_name,
        pickup_location=default_pickup_location(),
        delivery_location=delivery_location,
    )
    db.add(order)
    db.flush()

    for line in payload.items:
        product = products[line.product_id]
        db.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=product.price,
                total_price=product.price * line.quantity,
            )
        )
        db.add(
            StockMovement(
                product_id=product.id,
                type=StockMovementType.OUT,
                quantity=line.quantity,
                reason=f"Order: {order.order_number}",
            )
        )

    for product_id, quantity in requested.items():
        product = products[product_id]
        if not debit_stock(db, product, quantity):
            db.rollback()
            raise _bad_request(f"Insufficient stock for: {product.name}")

    add_canned_events(db, order)
    db.commit()

    db.refresh(order)
    for product in products.values():
        db.refresh(product)

    metrics_store.increment("orders_created_total")
    log_event(f"order_created order_number={order.order_number}", order_id=order.id)

    submit_low_stock_alerts(integrations, list(products.values()))
    _submit_order_side_effects(integrations, order, confirmation=True)
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise _not_found()
    return order


def get_order_by_number(db: Session, order_number: str) -> Order:
    order = db.scalar(select(Order).where(Order.order_number == order_number))
    if not order:
        raise _not_found()
    return order


def get_order_by_tracking_id(db: Session, tracking_id: str) -> Order:
    order = db.scalar(select(Order).where(Order.tracking_id == tracking_id))
    if not order:
        raise _not_found("Tracking ID not found")
    return order


def list_orders(db: Session, status_filter: OrderStatus | None = None) -> list[Order]:
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)
    return list(db.scalars(query.order_by(Order.created_at.desc(), Order.id.desc())))


def list_customer_orders(db: Session, customer_id: str) -> list[Order]:
    return list(
        db.scalars(
            select(Order)
            .where(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
    )


def get_customer_order(db: Session, order_id: int, auth: AuthContext) -> Order:
    order = get_order(db, order_id)
    if auth.role != "ADMIN" and order.customer_id != auth.user_id:
        raise _forbidden("Order belongs to another customer")
    return order


def _apply_status(order: Order, new_status: OrderStatus, reason: str | None) -> None:
    if new_status == OrderStatus.CANCELLED:
        cleaned = (reason or "").strip()
        if not cleaned:
            raise _bad_request(CANCELLATION_REASON_REQUIRED)
        order.cancellation_reason = cleaned

    order.status = new_status
    stamp = _STAGE_TIMESTAMPS.get(new_status)
    if stamp and getattr(order, stamp) is None:
        setattr(order, stamp, _utcnow())
    order.updated_at = _utcnow()


def update_order_status(
    db: Session,
    order_id: int,
    new_status: OrderStatus,
    reason: str | None,
    integrations: OrderIntegrations,
) -> Order:
    order = get_order(db, order_id)
    return _change_status(db, order, new_status, reason, integrations)


def _change_status(
    db: Session,
    order: Order,
    new_status: OrderStatus,
    reason: str | None,
    integrations: OrderIntegrations,
) -> Order:
    previous = order.status
    if new_status == previous:
        return order

    ensure_forward_transition(previous, new_status)
    _apply_status(order, new_status, reason)
    add_status_event(db, order, new_status)
    db.commit()
    db.refresh(order)

    metrics_store.increment("order_status_changes_total")
    log_event(
        f"order_status_changed from={previous.value} to={new_status.value}", order_id=order.id
    )
    _submit_order_side_effects(integrations, order, confirmation=False)
    return order


def accept_order(
    db: Session, order_id: int, agent_id: str, integrations: OrderIntegrations
) -> Order:
    order = get_order(db, order_id)
    if order.assigned_to is not None:
        raise _bad_request(ALREADY_ASSIGNED)
    ensure_delivery_agent_transition(order.status, OrderStatus.ACCEPTED)

    now = _utcnow()
    result = db.execute(
        update(Order)
        .where(
            Order.id == order.id,
            Order.assigned_to.is_(None),
            Order.status == order.status,
        )
        .values(
            assigned_to=agent_id,
            status=OrderStatus.ACCEPTED,
            accepted_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        metrics_store.increment("order_accept_conflicts_total")
        raise _bad_request(ALREADY_ASSIGNED)

    db.commit()
    db.refresh(order)

    metrics_store.increment("order_status_changes_total")
    log_event("order_accepted", order_id=order.id, agent_id=agent_id)
    _submit_order_side_effects(integrations, order, confirmation=False)
    return order


def _assigned_order(db: Session, order_id: int, agent_id: str) -> Order:
    order = get_order(db, order_id)
    if order.assigned_to != agent_id:
        raise _forbidden("Order is not assigned to you")
    return order


def update_delivery_status(
    db: Session,
    order_id: int,
    agent_id: str,
    new_status: OrderStatus,
    reason: str | None,
    integrations: OrderIntegrations,
) -> Order:
    order = _assigned_order(db, order_id, agent_id)
    ensure_delivery_agent_transition(order.status, new_status)
    return _change_status(db, order, new_status, reason, integrations)


def update_location(
    db: Session, order_id: int, agent_id: str, payload: LocationUpdate
) -> Order:
    order = _assigned_order(db, order_id, agent_id)
    record_location(db, order, payload)
    db.commit()
    db.refresh(order)
    log_event("order_location_updated", order_id=order.id, agent_id=agent_id)
    return order


def list_available_orders(db: Session) -> list[Order]:
    return list(
        db.scalars(
            select(Order)
            .where(Order.assigned_to.is_(None), Order.status.in_(AVAILABLE_FOR_PICKUP))
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
    )


def list_agent_orders(db: Session, agent_id: str) -> list[Order]:
    return list(
        db.scalars(
            select(Order)
            .where(Order.assigned_to == agent_id)
            .order_by(Order.updated_at.desc(), Order.id.desc())
        )
    )


def get_order_details(db: Session, order_id: int, auth: AuthContext) -> Order:
    order = get_order(db, order_id)
    if auth.role != "ADMIN" and order.assigned_to != auth.user_id:
        raise _forbidden("Order is not assigned to you")
    return order
