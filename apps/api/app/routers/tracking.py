from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.dependencies import OrderIntegrations, get_order_integrations
from app.schemas.order import OrderResponse
from app.schemas.tracking import LocationHistoryResponse, PublicTrackingResponse
from app.services.orders_service import get_order_by_number, get_order_by_tracking_id
from app.services.tracking_service import location_history, tracking_view

router = APIRouter(prefix="/api/v1/tracking", tags=["tracking"])


@router.get("/orders/{order_number}", response_model=OrderResponse, summary="Order by number")
def order_by_number_endpoint(order_number: str, db: Session = Depends(get_db)) -> OrderResponse:
    return OrderResponse.model_validate(get_order_by_number(db, order_number))


@router.get("/{tracking_id}", response_model=PublicTrackingResponse, summary="Tracking timeline")
def tracking_endpoint(tracking_id: str, db: Session = Depends(get_db)) -> PublicTrackingResponse:
    return tracking_view(db, get_order_by_tracking_id(db, tracking_id))


@router.get(
    "/{tracking_id}/order", response_model=OrderResponse, summary="Order by tracking id"
)
def order_by_tracking_endpoint(tracking_id: str, db: Session = Depends(get_db)) -> OrderResponse:
    return OrderResponse.model_validate(get_order_by_tracking_id(db, tracking_id))


@router.get(
    "/{tracking_id}/locations",
    response_model=LocationHistoryResponse,
    summary="Live delivery tracking",
)
def locations_endpoint(
    tracking_id: str,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
) -> LocationHistoryResponse:
    order = get_order_by_tracking_id(db, tracking_id)
    return location_history(db, order, integrations.geocoder)
