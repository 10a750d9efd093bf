from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import ADMIN, DELIVERY_MAN, AuthContext, require_roles
from app.db.session import get_db
from app.dependencies import OrderIntegrations, get_order_integrations
from app.schemas.order import (
    LocationUpdate,
    OrderDetailsResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from app.services.orders_service import (
    accept_order,
    get_order_details,
    list_agent_orders,
    list_available_orders,
    update_delivery_status,
    update_location,
)

router = APIRouter(prefix="/api/v1/delivery/orders", tags=["delivery"])


@router.get("/available", response_model=OrderListResponse, summary="Orders awaiting pickup")
def available_orders_endpoint(
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(DELIVERY_MAN)),
) -> OrderListResponse:
    orders = list_available_orders(db)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.get("/mine", response_model=OrderListResponse, summary="Orders assigned to me")
def my_orders_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_roles(DELIVERY_MAN)),
) -> OrderListResponse:
    orders = list_agent_orders(db, auth.user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.post("/{order_id}/accept", response_model=OrderResponse, summary="Accept order")
def accept_order_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    auth: AuthContext = Depends(require_roles(DELIVERY_MAN)),
) -> OrderResponse:
    return OrderResponse.model_validate(accept_order(db, order_id, auth.user_id, integrations))


@router.put("/{order_id}/status", response_model=OrderResponse, summary="Advance delivery")
def update_status_endpoint(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    auth: AuthContext = Depends(require_roles(DELIVERY_MAN)),
) -> OrderResponse:
    order = update_delivery_status(
        db,
        order_id,
        auth.user_id,
        payload.status,
        payload.cancellation_reason,
        integrations,
    )
    return OrderResponse.model_validate(order)


@router.put("/{order_id}/location", response_model=OrderDetailsResponse, summary="Report GPS")
def update_location_endpoint(
    order_id: int,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_roles(DELIVERY_MAN)),
) -> OrderDetailsResponse:
    order = update_location(db, order_id, auth.user_id, payload)
    return OrderDetailsResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderDetailsResponse, summary="Delivery details")
def order_details_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_roles(DELIVERY_MAN, ADMIN)),
) -> OrderDetailsResponse:
    return OrderDetailsResponse.model_validate(get_order_details(db, order_id, auth))
