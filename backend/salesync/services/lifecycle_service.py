# Overview: Sale lifecycle engine; guarded transitions with stock, ledger and outbox side effects.

"""
Sale Lifecycle Service

================================================================================
STATE MACHINE:
    PENDING -> APPROVED   (terminal)
    PENDING -> REJECTED   (terminal)

    PENDING:  Stock already decremented, aggregates untouched
    APPROVED: Revenue/profit recognized on the product, stock unchanged
    REJECTED: Stock restored with a compensating ledger movement
================================================================================

RULES:
1. Every transition is one DB transaction: sale row, product row and ledger
   movement commit together or not at all.
2. A resolved sale never moves again. The second approve/reject of the same
   sale fails with InvalidTransition and mutates nothing.
3. The sale row is re-read under lock (populate_existing) inside the
   transaction; optimistic version checks turn a lost race into a retry that
   then observes the committed status.
4. Realtime events are built from the in-transaction snapshot and returned
   in the SaleTransition outbox. Nothing is published from here; the caller
   hands the outbox to the NotificationDispatcher after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..extensions import db
from ..models import Product, Sale, User
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..models.sales import (
    PAYMENT_METHODS,
    SALE_STATUS_APPROVED,
    SALE_STATUS_PENDING,
    SALE_STATUS_REJECTED,
    SALE_STATUSES,
)
from ..realtime import router
from ..realtime.events import RealtimeEvent
from salesync.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    InsufficientStock,
    InvalidSaleInput,
    InvalidTransition,
    MissingReason,
    ProductNotFound,
    SaleLifecycleError,
    SaleNotFound,
)
from .ledger_service import record_movement
from .pending_service import ACTION_APPROVED, ACTION_NEW_SALE, ACTION_REJECTED
from .sequence_service import next_sale_number

__all__ = [
    "SaleTransition",
    "create_sale",
    "approve_sale",
    "reject_sale",
    "get_sale",
    "list_sales",
    "recent_sales_for_employee",
    "SaleLifecycleError",
    "ProductNotFound",
    "SaleNotFound",
    "InsufficientStock",
    "InvalidTransition",
    "MissingReason",
    "InvalidSaleInput",
]


TRANSITION_CREATED = "created"
TRANSITION_APPROVED = "approved"
TRANSITION_REJECTED = "rejected"


@dataclass
class SaleTransition:
    """
    Committed result of one lifecycle operation.

    events: outbox to deliver after commit, in order
    pending_action / pending_delta: what the pending-count push should carry
    (no push when pending_action is None, e.g. inside a bulk batch)
    """
    sale: Sale
    kind: str
    actor_id: int
    sale_number: str
    stock_restored: int | None = None
    events: list[RealtimeEvent] = field(default_factory=list)
    pending_action: str | None = None
    pending_delta: int | None = None


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _load_sale_for_transition(sale_id: int, target: str) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if sale is None:
        raise SaleNotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    if sale.status != SALE_STATUS_PENDING:
        raise InvalidTransition(
            f"Cannot mark sale {sale.sale_number} {target}: current status is '{sale.status}'",
            details={"sale_id": sale.id, "current_status": sale.status},
        )
    return sale


def _run_transition(op):
    """Run op under retry; roll back and re-raise domain failures."""
    try:
        return run_with_retry(op)
    except SaleLifecycleError:
        db.session.rollback()
        raise


def create_sale(
    product_id: int,
    qty_sold: int,
    *,
    actor: User,
    payment_method: str | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    employee_notes: str | None = None,
) -> SaleTransition:
    """
    Record a sale in PENDING and reserve its stock.

    Unit price and cost are snapshotted from the product; totals and profit
    are computed once here and never recomputed.

    Raises:
        InvalidSaleInput: non-positive quantity or unknown payment method
        ProductNotFound: unknown product
        InsufficientStock: qty_sold exceeds qty_in_stock (details available/requested)
    """
    if not _is_positive_int(qty_sold):
        raise InvalidSaleInput("Quantity must be a positive integer", details={"qty_sold": qty_sold})

    method = payment_method or "cash"
    if method not in PAYMENT_METHODS:
        raise InvalidSaleInput(
            f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )

    def _op() -> SaleTransition:
        # Sequence increment is the first write of the transaction
        sale_number = next_sale_number()

        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})

        if product.qty_in_stock < qty_sold:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}",
                details={"available": product.qty_in_stock, "requested": qty_sold},
            )

        now = utcnow()
        unit_price = product.price_cents
        unit_cost = product.cost_price_cents
        total_price = unit_price * qty_sold
        total_cost = unit_cost * qty_sold

        sale = Sale(
            sale_number=sale_number,
            product=product,
            sold_by=actor,
            qty_sold=qty_sold,
            unit_price_cents=unit_price,
            unit_cost_cents=unit_cost,
            total_price_cents=total_price,
            total_cost_cents=total_cost,
            profit_cents=total_price - total_cost,
            status=SALE_STATUS_PENDING,
            payment_method=method,
            customer_name=_clean(customer_name),
            customer_phone=_clean(customer_phone),
            notes=_clean(notes),
            employee_notes=_clean(employee_notes),
            sales_date=now,
            created_at=now,
        )
        db.session.add(sale)

        product.qty_in_stock = product.qty_in_stock - qty_sold
        db.session.flush()

        record_movement(
            product=product,
            movement_type=MOVEMENT_OUT,
            quantity=qty_sold,
            reason=f"Sale {sale_number} - Pending approval",
            recorded_by_user_id=actor.id,
            sale_id=sale.id,
            cost_price_cents=unit_cost,
            occurred_at=now,
        )

        events = router.events_for_created(sale)
        transition = SaleTransition(
            sale=sale,
            kind=TRANSITION_CREATED,
            actor_id=actor.id,
            sale_number=sale_number,
            events=events,
            pending_action=ACTION_NEW_SALE,
            pending_delta=1,
        )
        db.session.commit()
        return transition

    return _run_transition(_op)


def approve_sale(
    sale_id: int,
    *,
    actor: User,
    notes: str | None = None,
    bulk: bool = False,
) -> SaleTransition:
    """
    PENDING -> APPROVED. Recognizes revenue and profit on the product.

    Stock is not touched; it was already decremented at creation.
    With bulk=True only the employee-facing status update goes into the
    outbox and no pending push is requested; the bulk coordinator sends
    one summary for the whole batch.

    Raises:
        SaleNotFound, InvalidTransition (details current_status)
    """
    def _op() -> SaleTransition:
        sale = _load_sale_for_transition(sale_id, SALE_STATUS_APPROVED)
        now = utcnow()

        sale.status = SALE_STATUS_APPROVED
        sale.approved_by_user_id = actor.id
        sale.approved_by = actor
        sale.approved_at = now
        admin_note = _clean(notes)
        if admin_note:
            sale.notes = admin_note

        product = lock_for_update(db.session.query(Product).filter_by(id=sale.product_id)).first()
        product.total_sales_cents = (product.total_sales_cents or 0) + sale.total_price_cents
        product.total_profit_cents = (product.total_profit_cents or 0) + sale.profit_cents
        product.last_sale_date = now

        db.session.flush()

        if bulk:
            events = [router.status_update_for_approved(sale, actor, bulk=True)]
            pending_action, pending_delta = None, None
        else:
            events = router.events_for_approved(sale, actor)
            pending_action, pending_delta = ACTION_APPROVED, -1

        transition = SaleTransition(
            sale=sale,
            kind=TRANSITION_APPROVED,
            actor_id=actor.id,
            sale_number=sale.sale_number,
            events=events,
            pending_action=pending_action,
            pending_delta=pending_delta,
        )
        db.session.commit()
        return transition

    return _run_transition(_op)


def reject_sale(sale_id: int, *, actor: User, reason: str | None) -> SaleTransition:
    """
    PENDING -> REJECTED. Restores exactly the quantity decremented at creation
    and appends a compensating "in" movement.

    Raises:
        MissingReason: reason empty after stripping (checked before any read)
        SaleNotFound, InvalidTransition
    """
    reason = _clean(reason)
    if not reason:
        raise MissingReason("Rejection reason is required", details={"sale_id": sale_id})

    def _op() -> SaleTransition:
        sale = _load_sale_for_transition(sale_id, SALE_STATUS_REJECTED)
        now = utcnow()

        sale.status = SALE_STATUS_REJECTED
        sale.approved_by_user_id = actor.id
        sale.approved_by = actor
        sale.approved_at = now
        sale.notes = reason

        product = lock_for_update(db.session.query(Product).filter_by(id=sale.product_id)).first()
        product.qty_in_stock = product.qty_in_stock + sale.qty_sold
        db.session.flush()

        record_movement(
            product=product,
            movement_type=MOVEMENT_IN,
            quantity=sale.qty_sold,
            reason=f"Sale {sale.sale_number} rejection - Stock restored",
            recorded_by_user_id=actor.id,
            notes=f"Rejected by {actor.full_name}: {reason}",
            sale_id=sale.id,
            cost_price_cents=sale.unit_cost_cents,
            occurred_at=now,
        )

        transition = SaleTransition(
            sale=sale,
            kind=TRANSITION_REJECTED,
            actor_id=actor.id,
            sale_number=sale.sale_number,
            stock_restored=sale.qty_sold,
            events=router.events_for_rejected(sale, actor, stock_restored=sale.qty_sold),
            pending_action=ACTION_REJECTED,
            pending_delta=-1,
        )
        db.session.commit()
        return transition

    return _run_transition(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    status: str | None = None,
    sold_by_user_id: int | None = None,
    product_id: int | None = None,
    payment_method: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = 50,
) -> list[Sale]:
    """
    Sales newest first.

    The date range applies to sales_date and is inclusive at both ends.
    """
    if status is not None and status not in SALE_STATUSES:
        raise InvalidSaleInput(
            f"Status must be one of: {', '.join(SALE_STATUSES)}",
            details={"status": status},
        )
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise InvalidSaleInput(
            f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )

    q = db.session.query(Sale)
    if status is not None:
        q = q.filter(Sale.status == status)
    if sold_by_user_id is not None:
        q = q.filter(Sale.sold_by_user_id == sold_by_user_id)
    if product_id is not None:
        q = q.filter(Sale.product_id == product_id)
    if payment_method is not None:
        q = q.filter(Sale.payment_method == payment_method)
    if start_date is not None:
        q = q.filter(Sale.sales_date >= start_date)
    if end_date is not None:
        q = q.filter(Sale.sales_date <= end_date)

    q = q.order_by(Sale.created_at.desc(), Sale.id.desc())
    return q.limit(limit).all()


def recent_sales_for_employee(user_id: int, limit: int = 5) -> list[Sale]:
    return list_sales(sold_by_user_id=user_id, limit=limit)
