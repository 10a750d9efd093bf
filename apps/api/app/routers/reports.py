from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import ADMIN, AuthContext, require_roles
from app.db.session import get_db
from app.schemas.product import ProductResponse, StockSummaryResponse
from app.services.products_service import stock_summary

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/summary", response_model=StockSummaryResponse, summary="Stock summary")
def stock_summary_endpoint(
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> StockSummaryResponse:
    summary = stock_summary(db)
    return StockSummaryResponse(
        total_products=summary.total_products,
        total_stock_value=summary.total_stock_value,
        low_stock_count=len(summary.low_stock_items),
        low_stock_items=[ProductResponse.model_validate(p) for p in summary.low_stock_items],
        near_expiry_count=len(summary.near_expiry_items),
        near_expiry_items=[ProductResponse.model_validate(p) for p in summary.near_expiry_items],
    )
