from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.auth.dependencies import ADMIN, AuthContext, get_auth_context, require_roles
from app.db.session import get_db
from app.dependencies import OrderIntegrations, get_order_integrations
from app.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    StockAdjustment,
    StockMovementListResponse,
    StockMovementResponse,
)
from app.services.products_service import (
    create_product,
    delete_product,
    get_product,
    list_low_stock_products,
    list_near_expiry_products,
    list_products,
    stock_history,
    stock_in,
    stock_out,
    update_product,
)

router = APIRouter(prefix="/api/v1/products", tags=["products"])


def _product_list(products) -> ProductListResponse:
    return ProductListResponse(
        items=[ProductResponse.model_validate(product) for product in products]
    )


@router.get("", response_model=ProductListResponse, summary="List products")
def list_products_endpoint(
    db: Session = Depends(get_db),
    category: str | None = Query(default=None),
    _auth: AuthContext = Depends(get_auth_context),
) -> ProductListResponse:
    return _product_list(list_products(db, category))


@router.get("/low-stock", response_model=ProductListResponse, summary="Products below threshold")
def low_stock_endpoint(
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductListResponse:
    return _product_list(list_low_stock_products(db))


@router.get(
    "/near-expiry", response_model=ProductListResponse, summary="Products expiring soon"
)
def near_expiry_endpoint(
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductListResponse:
    return _product_list(list_near_expiry_products(db))


@router.post("", response_model=ProductResponse, summary="Create product", status_code=201)
def create_product_endpoint(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductResponse:
    return ProductResponse.model_validate(create_product(db, payload, integrations))


@router.get("/{product_id}", response_model=ProductResponse, summary="Get product")
def get_product_endpoint(
    product_id: int,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(get_auth_context),
) -> ProductResponse:
    return ProductResponse.model_validate(get_product(db, product_id))


@router.patch("/{product_id}", response_model=ProductResponse, summary="Update product")
def update_product_endpoint(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductResponse:
    return ProductResponse.model_validate(update_product(db, product_id, payload, integrations))


@router.delete("/{product_id}", status_code=204, summary="Delete product")
def delete_product_endpoint(
    product_id: int,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> Response:
    delete_product(db, product_id)
    return Response(status_code=204)


@router.post("/{product_id}/stock-in", response_model=ProductResponse, summary="Receive stock")
def stock_in_endpoint(
    product_id: int,
    payload: StockAdjustment,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductResponse:
    return ProductResponse.model_validate(stock_in(db, product_id, payload, integrations))


@router.post("/{product_id}/stock-out", response_model=ProductResponse, summary="Remove stock")
def stock_out_endpoint(
    product_id: int,
    payload: StockAdjustment,
    db: Session = Depends(get_db),
    integrations: OrderIntegrations = Depends(get_order_integrations),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> ProductResponse:
    return ProductResponse.model_validate(stock_out(db, product_id, payload, integrations))


@router.get(
    "/{product_id}/stock-history",
    response_model=StockMovementListResponse,
    summary="Stock movement ledger",
)
def stock_history_endpoint(
    product_id: int,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> StockMovementListResponse:
    movements = stock_history(db, product_id)
    return StockMovementListResponse(
        items=[StockMovementResponse.model_validate(movement) for movement in movements]
    )
