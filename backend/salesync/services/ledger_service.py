# Overview: Stock ledger; append-only movement log paired with every qty_in_stock change.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import Product, StockMovement, User
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TYPES
from salesync.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .errors import InsufficientStock, InvalidMovementInput, ProductNotFound, SaleLifecycleError
"""
Stock Ledger Invariants (authoritative)

- Append-only: movements are never updated or deleted.
- Every change to Product.qty_in_stock is paired, in the same DB transaction,
  with exactly one StockMovement row.
- record_movement() performs no validation of its own; callers (the sale
  lifecycle, manual adjustments) have already decided the change is legal.
- movement_date is business time; created_at is system time (DB default).
"""


def record_movement(
    *,
    product: Product,
    movement_type: str,
    quantity: int,
    reason: str,
    recorded_by_user_id: int,
    notes: Optional[str] = None,
    sale_id: int | None = None,
    cost_price_cents: int | None = None,
    occurred_at: Optional[datetime] = None,
) -> StockMovement:
    """
    Append one stock movement inside the caller's transaction.

    - No domain logic here.
    - Flushes (to assign an id) but never commits.
    """
    movement = StockMovement(
        product_id=product.id,
        recorded_by_user_id=recorded_by_user_id,
        sale_id=sale_id,
        type=movement_type,
        quantity=quantity,
        cost_price_cents=cost_price_cents if cost_price_cents is not None else product.cost_price_cents,
        reason=reason,
        notes=notes,
        movement_date=occurred_at or utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def adjust_stock(
    product_id: int,
    *,
    movement_type: str,
    quantity: int,
    reason: str,
    actor: User,
    notes: str | None = None,
    cost_price_cents: int | None = None,
) -> StockMovement:
    """
    Manual stock adjustment (restock or write-off) outside the sale lifecycle.

    Raises:
        InvalidMovementInput: bad type, quantity or empty reason
        ProductNotFound: unknown product
        InsufficientStock: an "out" movement larger than current stock
    """
    if movement_type not in MOVEMENT_TYPES:
        raise InvalidMovementInput(
            f"Movement type must be one of: {', '.join(MOVEMENT_TYPES)}",
            details={"type": movement_type},
        )
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidMovementInput("Quantity must be a positive integer", details={"quantity": quantity})
    if not reason or not reason.strip():
        raise InvalidMovementInput("Reason is required")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})

        if movement_type == MOVEMENT_OUT and product.qty_in_stock < quantity:
            raise InsufficientStock(
                "Insufficient stock",
                details={"available": product.qty_in_stock, "requested": quantity},
            )

        if movement_type == MOVEMENT_IN:
            product.qty_in_stock = product.qty_in_stock + quantity
        else:
            product.qty_in_stock = product.qty_in_stock - quantity

        movement = record_movement(
            product=product,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason.strip(),
            recorded_by_user_id=actor.id,
            notes=notes,
            cost_price_cents=cost_price_cents,
        )
        db.session.commit()
        return movement

    try:
        return run_with_retry(_op)
    except SaleLifecycleError:
        db.session.rollback()
        raise


def list_movements(
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    recorded_by_user_id: int | None = None,
    sale_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = 100,
) -> list[StockMovement]:
    """Movement history, newest first. Date bounds are inclusive on movement_date."""
    q = db.session.query(StockMovement)

    if product_id is not None:
        q = q.filter_by(product_id=product_id)
    if movement_type is not None:
        q = q.filter_by(type=movement_type)
    if recorded_by_user_id is not None:
        q = q.filter_by(recorded_by_user_id=recorded_by_user_id)
    if sale_id is not None:
        q = q.filter_by(sale_id=sale_id)
    if start_date is not None:
        q = q.filter(StockMovement.movement_date >= start_date)
    if end_date is not None:
        q = q.filter(StockMovement.movement_date <= end_date)

    q = q.order_by(StockMovement.movement_date.desc(), StockMovement.id.desc())
    return q.limit(limit).all()


def product_history(product_id: int, *, limit: int = 20) -> list[StockMovement]:
    """Latest movements of one product; ProductNotFound for an unknown id."""
    if db.session.get(Product, product_id) is None:
        raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return list_movements(product_id=product_id, limit=limit)
