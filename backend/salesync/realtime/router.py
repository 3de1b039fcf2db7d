# Overview: Fan-out router; maps committed lifecycle transitions to addressed events.

"""
Pure event construction. Nothing here performs I/O: each function reads an
in-memory Sale snapshot (taken inside the transition's DB transaction) and
returns the events to deliver once that transaction has committed.

Topology per transition:

    create   -> admin_room: new_sale_pending (+ low_stock_alert)
                employee:   sale_created_success
    approve  -> employee:   sale_status_updated(type=approved)
                admin_room: sale_approved_broadcast
    reject   -> employee:   sale_status_updated(type=rejected)
                admin_room: sale_rejected_broadcast
    bulk     -> employee:   sale_status_updated per approved sale
                admin_room: bulk_approval_completed (once)
"""

from __future__ import annotations

from salesync.time_utils import to_utc_z
from ..models import Product, Sale, User
from ..models.catalog import STOCK_OUT
from ..models.sales import SALE_STATUS_APPROVED, SALE_STATUS_REJECTED
from .events import (
    PRIORITY_CRITICAL,
    PRIORITY_INFO,
    PRIORITY_SUCCESS,
    PRIORITY_WARNING,
    BulkApprovalCompleted,
    LowStockAlert,
    NewSalePending,
    Notification,
    RealtimeEvent,
    SaleApprovedBroadcast,
    SaleCreated,
    SaleRejectedBroadcast,
    SaleStatusUpdated,
    UserNotice,
)
from .rooms import ADMIN_ROOM, employee_room, user_room


WALK_IN_CUSTOMER = "Walk-in Customer"


def _person(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "name": user.full_name,
    }


def _product(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "category": product.category.name if product.category else None,
        "priceCents": product.price_cents,
    }


def sale_snapshot(sale: Sale) -> dict:
    """Full sale + product + employee snapshot used in realtime payloads."""
    return {
        "id": sale.id,
        "saleNumber": sale.sale_number,
        "status": sale.status,
        "qtySold": sale.qty_sold,
        "unitPriceCents": sale.unit_price_cents,
        "totalPriceCents": sale.total_price_cents,
        "totalCostCents": sale.total_cost_cents,
        "profitCents": sale.profit_cents,
        "product": _product(sale.product),
        "soldBy": _person(sale.sold_by),
        "customerName": sale.customer_name or WALK_IN_CUSTOMER,
        "paymentMethod": sale.payment_method,
        "salesDate": to_utc_z(sale.sales_date),
        "createdAt": to_utc_z(sale.created_at),
    }


def resolution_snapshot(sale: Sale, actor: User, *, stock_restored: int | None = None) -> dict:
    """Snapshot for a resolved sale, naming who resolved it and when."""
    snapshot = sale_snapshot(sale)
    snapshot["notes"] = sale.notes
    if sale.status == SALE_STATUS_REJECTED:
        snapshot["rejectedBy"] = _person(actor)
        snapshot["rejectedAt"] = to_utc_z(sale.approved_at)
        snapshot["rejectionReason"] = sale.notes
        snapshot["stockRestored"] = stock_restored
    else:
        snapshot["approvedBy"] = _person(actor)
        snapshot["approvedAt"] = to_utc_z(sale.approved_at)
    return snapshot


def events_for_created(sale: Sale) -> list[RealtimeEvent]:
    employee = sale.sold_by
    product = sale.product
    snapshot = sale_snapshot(sale)

    events: list[RealtimeEvent] = [
        NewSalePending(
            room=ADMIN_ROOM,
            sale=snapshot,
            notification=Notification(
                title="New Sale Pending Approval",
                message=f"{employee.full_name} sold {sale.qty_sold} x {product.name}",
                priority=PRIORITY_INFO,
                auto_hide=True,
                hide_after=10000,
            ),
        ),
        SaleCreated(
            room=employee_room(employee.id),
            sale=snapshot,
            notification=Notification(
                title="Sale Created Successfully",
                message=f"Your sale #{sale.sale_number} is pending approval",
                priority=PRIORITY_SUCCESS,
                auto_hide=True,
                hide_after=5000,
            ),
        ),
    ]

    alert = low_stock_alert(product)
    if alert is not None:
        events.append(alert)
    return events


def low_stock_alert(product: Product) -> LowStockAlert | None:
    if not product.is_low_stock:
        return None

    out_of_stock = product.stock_level == STOCK_OUT
    return LowStockAlert(
        room=ADMIN_ROOM,
        product={
            "id": product.id,
            "name": product.name,
            "currentStock": product.qty_in_stock,
            "minStock": product.min_stock_level,
        },
        severity=product.stock_level,
        notification=Notification(
            title="Product Out of Stock" if out_of_stock else "Low Stock Warning",
            message=f"{product.name} - Stock: {product.qty_in_stock}",
            priority=PRIORITY_CRITICAL if out_of_stock else PRIORITY_WARNING,
            auto_hide=False,
        ),
    )


def status_update_for_approved(sale: Sale, actor: User, *, bulk: bool = False) -> SaleStatusUpdated:
    message = f"Your sale #{sale.sale_number} for {sale.product.name} has been approved by {actor.full_name}"
    if bulk:
        message = f"Your sale #{sale.sale_number} was approved (bulk approval)"

    return SaleStatusUpdated(
        room=employee_room(sale.sold_by_user_id),
        type=SALE_STATUS_APPROVED,
        sale=resolution_snapshot(sale, actor),
        notification=Notification(
            title="Sale Approved",
            message=message,
            priority=PRIORITY_SUCCESS,
            auto_hide=bulk,
            hide_after=5000 if bulk else None,
            extra={"amountCents": sale.total_price_cents, "profitCents": sale.profit_cents},
        ),
    )


def events_for_approved(sale: Sale, actor: User) -> list[RealtimeEvent]:
    return [
        status_update_for_approved(sale, actor),
        SaleApprovedBroadcast(
            room=ADMIN_ROOM,
            sale_id=sale.id,
            sale_number=sale.sale_number,
            approved_by=actor.full_name,
            amount_cents=sale.total_price_cents,
            profit_cents=sale.profit_cents,
            employee_name=sale.sold_by.full_name,
            product_name=sale.product.name,
        ),
    ]


def events_for_rejected(sale: Sale, actor: User, *, stock_restored: int) -> list[RealtimeEvent]:
    reason = sale.notes or ""
    return [
        SaleStatusUpdated(
            room=employee_room(sale.sold_by_user_id),
            type=SALE_STATUS_REJECTED,
            sale=resolution_snapshot(sale, actor, stock_restored=stock_restored),
            notification=Notification(
                title="Sale Rejected",
                message=f"Your sale #{sale.sale_number} for {sale.product.name} was rejected",
                priority=PRIORITY_WARNING,
                auto_hide=False,
                extra={"reason": reason, "stockRestored": stock_restored},
            ),
        ),
        SaleRejectedBroadcast(
            room=ADMIN_ROOM,
            sale_id=sale.id,
            sale_number=sale.sale_number,
            rejected_by=actor.full_name,
            reason=reason,
            amount_cents=sale.total_price_cents,
            employee_name=sale.sold_by.full_name,
            product_name=sale.product.name,
            stock_restored=stock_restored,
        ),
    ]


def bulk_completed_event(
    *,
    total_processed: int,
    success_count: int,
    failure_count: int,
    actor: User,
) -> BulkApprovalCompleted:
    return BulkApprovalCompleted(
        room=ADMIN_ROOM,
        total_processed=total_processed,
        success_count=success_count,
        failure_count=failure_count,
        approved_by=actor.full_name,
    )


def user_notice(
    user_id: int,
    *,
    title: str,
    message: str,
    priority: str = PRIORITY_INFO,
    data: dict | None = None,
) -> UserNotice:
    return UserNotice(
        room=user_room(user_id),
        user_id=user_id,
        notification=Notification(title=title, message=message, priority=priority, auto_hide=True, hide_after=5000),
        data=data or {},
    )
