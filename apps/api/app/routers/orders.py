from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.dependencies import ADMIN, CUSTOMER, AuthContext, require_roles
from app.db.session import get_db
from app.dependencies import OrderIntegrations, get_order_integrations
from app.models.order import OrderStatus
from app.observability import observe_timing
from app.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from app.schemas.tracking import LocationHistoryResponse
from app.services.orders_service import (
    create_order,
    get_customer_order,
    get_order,
    list_customer_orders,
    list_orders,
    update_order_status,
)
from app.services.tracking_service import location_history

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])
admin_router = APIRouter(prefix="/api/v1/admin/orders", tags=["admin"])


@router.post("", response_model=OrderResponse, summary="Place order", status_code=201)
def create_order_endpoint(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    auth: AuthContext = Depends(require_roles(CUSTOMER)),
) -> OrderResponse:
    with observe_timing("order_creation_seconds"):
        order = create_order(db, auth, payload, integrations)
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse, summary="List my orders")
def list_my_orders_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_roles(CUSTOMER)),
) -> OrderListResponse:
    orders = list_customer_orders(db, auth.user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.get("/{order_id}", response_model=OrderResponse, summary="Get my order")
def get_my_order_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_roles(CUSTOMER, ADMIN)),
) -> OrderResponse:
    return OrderResponse.model_validate(get_customer_order(db, order_id, auth))


@router.get(
    "/{order_id}/location-tracking",
    response_model=LocationHistoryResponse,
    summary="Live tracking for my order",
)
def my_order_location_tracking_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    auth: AuthContext = Depends(require_roles(CUSTOMER, ADMIN)),
) -> LocationHistoryResponse:
    order = get_customer_order(db, order_id, auth)
    return location_history(db, order, integrations.geocoder)


@admin_router.get("", response_model=OrderListResponse, summary="List all orders")
def admin_list_orders_endpoint(
    db: Session = Depends(get_db),
    status: OrderStatus | None = Query(default=None),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> OrderListResponse:
    orders = list_orders(db, status)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@admin_router.get("/{order_id}", response_model=OrderResponse, summary="Get any order")
def admin_get_order_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> OrderResponse:
    return OrderResponse.model_validate(get_order(db, order_id))


@admin_router.put("/{order_id}/status", response_model=OrderResponse, summary="Update status")
def admin_update_status_endpoint(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> OrderResponse:
    order = update_order_status(
        db, order_id, payload.status, payload.cancellation_reason, integrations
    )
    return OrderResponse.model_validate(order)
