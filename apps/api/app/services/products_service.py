from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.dependencies import OrderIntegrations
from app.models.order import OrderItem
from app.models.product import Product, StockMovement, StockMovementType
from app.observability import log_event, metrics_store
from app.schemas.product import ProductCreate, ProductUpdate, StockAdjustment
from app.schemas.snapshots import ProductSnapshot

DEFAULT_STOCK_IN_REASON = "Purchase"
DEFAULT_STOCK_OUT_REASON = "Adjustment"
PRODUCT_IN_USE = "Product is referenced by existing orders"


@dataclass(frozen=True)
class StockSummary:
    total_products: int
    total_stock_value: Decimal
    low_stock_items: list[Product]
    near_expiry_items: list[Product]


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def list_products(db: Session, category: str | None = None) -> list[Product]:
    query = select(Product)
    if category:
        query = query.where(Product.category == category)
    return list(db.scalars(query.order_by(Product.id.asc())))


def list_low_stock_products(db: Session) -> list[Product]:
    return list(
        db.scalars(
            select(Product)
            .where(Product.stock_quantity < settings.low_stock_threshold)
            .order_by(Product.stock_quantity.asc(), Product.id.asc())
        )
    )


def list_near_expiry_products(db: Session, today: date | None = None) -> list[Product]:
    today = today or date.today()
    return list(
        db.scalars(
            select(Product)
            .where(
                Product.expiry_date.is_not(None),
                Product.expiry_date >= today,
                Product.expiry_date <= today + timedelta(days=settings.near_expiry_days),
            )
            .order_by(Product.expiry_date.asc(), Product.id.asc())
        )
    )


def stock_summary(db: Session, today: date | None = None) -> StockSummary:
    products = list_products(db)
    total_value = sum(
        (product.price * product.stock_quantity for product in products), Decimal("0.00")
    )
    return StockSummary(
        total_products=len(products),
        total_stock_value=total_value,
        low_stock_items=list_low_stock_products(db),
        near_expiry_items=list_near_expiry_products(db, today),
    )


def submit_expiry_alerts(
    integrations: OrderIntegrations,
    products: list[Product],
    today: date | None = None,
) -> None:
    today = today or date.today()
    for product in products:
        if not product.is_near_expiry(today, settings.near_expiry_days):
            continue
        metrics_store.increment("expiry_alerts_total")
        integrations.runner.submit(
            "expiry_alert",
            integrations.notifier.send_expiry_alert,
            ProductSnapshot.model_validate(product),
            product_id=product.id,
        )


def create_product(
    db: Session,
    payload: ProductCreate,
    integrations: OrderIntegrations,
) -> Product:
    product = Product(
        sku=payload.sku or None,
        name=payload.name,
        description=payload.description,
        category=payload.category,
        price=payload.price,
        stock_quantity=payload.stock_quantity,
        expiry_date=payload.expiry_date,
    )
    db.add(product)
    try:
        db.flush()
        if payload.stock_quantity:
            db.add(
                StockMovement(
                    product_id=product.id,
                    type=StockMovementType.IN,
                    quantity=payload.stock_quantity,
                    reason="Initial stock",
                )
            )
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Product SKU already exists"
        ) from err
    db.refresh(product)
    log_event("product_created", product_id=product.id)
    submit_expiry_alerts(integrations, [product])
    return product


def update_product(
    db: Session,
    product_id: int,
    payload: ProductUpdate,
    integrations: OrderIntegrations,
) -> Product:
    product = get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    if "expiry_date" in changes:
        submit_expiry_alerts(integrations, [product])
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    in_use = db.scalar(select(exists().where(OrderItem.product_id == product.id)))
    if in_use:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=PRODUCT_IN_USE)

    db.execute(delete(StockMovement).where(StockMovement.product_id == product.id))
    db.delete(product)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=PRODUCT_IN_USE) from err
    log_event("product_deleted", product_id=product_id)


def debit_stock(db: Session, product: Product, quantity: int) -> bool:
    """Decrement stock only if enough remains. Caller owns the transaction."""
    result = db.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def submit_low_stock_alerts(integrations: OrderIntegrations, products: list[Product]) -> None:
    for product in products:
        if not product.is_low_stock(settings.low_stock_threshold):
            continue
        metrics_store.increment("low_stock_alerts_total")
        integrations.runner.submit(
            "low_stock_alert",
            integrations.notifier.send_low_stock_alert,
            ProductSnapshot.model_validate(product),
            product_id=product.id,
        )


def stock_in(
    db: Session,
    product_id: int,
    payload: StockAdjustment,
    integrations: OrderIntegrations,
) -> Product:
    product = get_product(db, product_id)
    db.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(stock_quantity=Product.stock_quantity + payload.quantity)
        .execution_options(synchronize_session=False)
    )
    db.add(
        StockMovement(
            product_id=product.id,
            type=StockMovementType.IN,
            quantity=payload.quantity,
            reason=payload.reason or DEFAULT_STOCK_IN_REASON,
            notes=payload.notes,
        )
    )
    db.commit()
    db.refresh(product)
    log_event(f"stock_in quantity={payload.quantity}", product_id=product.id)
    submit_low_stock_alerts(integrations, [product])
    return product


def stock_out(
    db: Session,
    product_id: int,
    payload: StockAdjustment,
    integrations: OrderIntegrations,
) -> Product:
    product = get_product(db, product_id)
    if not debit_stock(db, product, payload.quantity):
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for: {product.name}",
        )
    db.add(
        StockMovement(
            product_id=product.id,
            type=StockMovementType.OUT,
            quantity=payload.quantity,
            reason=payload.reason or DEFAULT_STOCK_OUT_REASON,
            notes=payload.notes,
        )
    )
    db.commit()
    db.refresh(product)
    log_event(f"stock_out quantity={payload.quantity}", product_id=product.id)
    submit_low_stock_alerts(integrations, [product])
    return product


def stock_history(db: Session, product_id: int) -> list[StockMovement]:
    get_product(db, product_id)
    return list(
        db.scalars(
            select(StockMovement)
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        )
    )
